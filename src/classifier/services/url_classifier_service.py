# src/classifier/services/url_classifier_service.py
import logging
import re
from typing import Iterable, List, Pattern, Tuple, Union, Dict, Any
from urllib.parse import urlparse

from classifier.model import PageTypePattern, ClassifiedUrl, UNKNOWN_TYPE, UNKNOWN_PATTERN

logger = logging.getLogger(__name__)


class UrlClassifier:
    """
    Maps a URL to a page-type label using ordered glob patterns.

    Rules are tried from most to least specific, where specificity is the number
    of '/'-delimited parts of the pattern. Rules with equal specificity keep their
    configured order, so '/blog/*' listed before '/news/*' is always tried first.
    """

    def __init__(self, patterns: Iterable[Union[PageTypePattern, Dict[str, Any]]]):
        rules = [
            p if isinstance(p, PageTypePattern) else PageTypePattern.model_validate(p)
            for p in patterns
        ]
        # sorted() is stable: ties keep configured order.
        self.patterns: List[PageTypePattern] = sorted(rules, key=lambda r: r.specificity, reverse=True)
        self._compiled: List[Tuple[PageTypePattern, Pattern[str]]] = [
            (rule, self._compile(rule.pattern)) for rule in self.patterns
        ]
        logger.debug("UrlClassifier loaded %d page-type patterns.", len(self.patterns))

    @staticmethod
    def _compile(pattern: str) -> Pattern[str]:
        """'/artists/*' -> ^/artists/.*$ ; every character except '*' is literal."""
        clean_pattern = pattern[:-1] if pattern.endswith("/") else pattern
        body = ".*".join(re.escape(part) for part in clean_pattern.split("*"))
        return re.compile(f"^{body}$")

    @staticmethod
    def _extract_path(url: str) -> str | None:
        try:
            parsed = urlparse(url)
        except (ValueError, TypeError, AttributeError):
            return None
        if not parsed.scheme or not parsed.netloc:
            return None
        path = parsed.path
        return path[:-1] if path.endswith("/") else path

    def classify_with_pattern(self, url: str) -> ClassifiedUrl:
        path = self._extract_path(url)
        if path is None:
            logger.debug("Could not parse %r as an absolute URL; classifying as %s.", url, UNKNOWN_TYPE)
            return ClassifiedUrl(loc=str(url), type=UNKNOWN_TYPE, pattern=UNKNOWN_PATTERN)

        for rule, regex in self._compiled:
            if regex.match(path):
                return ClassifiedUrl(loc=url, type=rule.type, pattern=rule.pattern)

        return ClassifiedUrl(loc=url, type=UNKNOWN_TYPE, pattern=UNKNOWN_PATTERN)

    def classify(self, url: str) -> str:
        return self.classify_with_pattern(url).type
