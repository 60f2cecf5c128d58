import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from auditor.model import ExtrapolatedViolation, PageTypeReport, Violation
from auditor.services.rule_classification_service import auto_classify
from classifier.model import PageTypeGroup
from sampler.model import SampleResult

logger = logging.getLogger(__name__)


def extrapolate_count(instances_found: int, samples_taken: int, total_count: int) -> int:
    """
    round(instances_found / samples_taken * total_count), rounding halves up.
    """
    if samples_taken <= 0:
        raise ValueError("samples_taken must be > 0 to extrapolate")
    return int(math.floor(instances_found * total_count / samples_taken + 0.5))


class ExtrapolationService:
    """
    Projects per-rule occurrence counts from the sampled pages of a page type
    onto the whole type. A page hosting several rules counts once per rule, so
    the per-type sum may exceed the number of pages.
    """

    def extrapolate(
            self,
            group: PageTypeGroup,
            sample: SampleResult,
            details: Optional[Mapping[str, Sequence[Violation]]] = None,
    ) -> List[ExtrapolatedViolation]:
        if sample.samples_taken <= 0:
            raise ValueError(f"Page type '{group.type}' has no sampled pages to extrapolate from")

        details = details or {}
        example_urls: Dict[str, List[str]] = {}

        # dict keeps first-seen rule order
        for url, rule_ids in zip(sample.sampled_urls, sample.page_violations):
            for rule_id in sorted(rule_ids, key=self._rule_order(details.get(url, ()))):
                urls = example_urls.setdefault(rule_id, [])
                if url not in urls:
                    urls.append(url)

        first_seen = self._first_occurrences(sample, details)

        results = []
        for rule_id, urls in example_urls.items():
            instances_found = len(urls)
            violation = first_seen.get(rule_id)
            results.append(ExtrapolatedViolation(
                rule_id=rule_id,
                instances_found=instances_found,
                extrapolated_total=extrapolate_count(instances_found, sample.samples_taken, group.total_count),
                example_urls=urls,
                impact=violation.impact if violation else "serious",
                description=(violation.description or violation.help) if violation else "",
                help_url=violation.help_url if violation else None,
                category=auto_classify(rule_id).category,
            ))

        logger.debug(
            "Extrapolated %d rules for '%s' from %d of %d pages.",
            len(results), group.type, sample.samples_taken, group.total_count
        )
        return results

    def build_report(
            self,
            group: PageTypeGroup,
            sample: SampleResult,
            details: Optional[Mapping[str, Sequence[Violation]]] = None,
    ) -> PageTypeReport:
        violations = self.extrapolate(group, sample, details) if sample.samples_taken else []
        return PageTypeReport(
            type=group.type,
            pattern=group.pattern,
            total_count=group.total_count,
            pages_sampled=sample.samples_taken,
            violations=violations,
        )

    @staticmethod
    def _rule_order(page_details: Sequence[Violation]):
        # Rules follow the tester's reporting order when known, else alphabetical.
        positions = {v.id: i for i, v in reversed(list(enumerate(page_details)))}
        return lambda rule_id: (positions.get(rule_id, len(positions)), rule_id)

    @staticmethod
    def _first_occurrences(
            sample: SampleResult,
            details: Mapping[str, Sequence[Violation]],
    ) -> Dict[str, Violation]:
        first_seen: Dict[str, Violation] = {}
        for url in sample.sampled_urls:
            for violation in details.get(url, ()):
                first_seen.setdefault(violation.id, violation)
        return first_seen
