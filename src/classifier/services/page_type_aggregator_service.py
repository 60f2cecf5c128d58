# src/classifier/services/page_type_aggregator_service.py
import logging
from typing import Any, Dict, Iterable, List

from classifier.model import PageTypeGroup
from classifier.services.url_classifier_service import UrlClassifier

logger = logging.getLogger(__name__)


def _loc_of(entry: Any) -> str:
    """Accepts SitemapUrl objects, {'loc': ...} dicts or plain strings."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return str(entry.get("loc", ""))
    return str(getattr(entry, "loc", ""))


class PageTypeAggregator:
    """Groups sitemap URLs by classified page type."""

    def __init__(self, classifier: UrlClassifier):
        self.classifier = classifier

    def aggregate(self, urls: Iterable[Any]) -> List[PageTypeGroup]:
        """
        Classifies every URL exactly once and returns one group per page type,
        sorted by total_count descending. Ties keep first-encountered order.
        """
        # dicts keep insertion order == order in which types were first seen
        buckets: Dict[str, Dict[str, Any]] = {}

        for entry in urls:
            loc = _loc_of(entry)
            classified = self.classifier.classify_with_pattern(loc)
            bucket = buckets.get(classified.type)
            if bucket is None:
                bucket = {"pattern": classified.pattern, "urls": []}
                buckets[classified.type] = bucket
            bucket["urls"].append(loc)

        groups = [
            PageTypeGroup(type=type_name, pattern=data["pattern"], urls=data["urls"])
            for type_name, data in buckets.items()
        ]
        groups.sort(key=lambda g: g.total_count, reverse=True)

        logger.debug(
            "Aggregated %d URLs into %d page types.",
            sum(g.total_count for g in groups), len(groups)
        )
        return groups
