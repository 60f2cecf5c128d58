# src/sampler/services/adaptive_sampler_service.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Sequence, Set, Union

from pydantic import ValidationError

from sampler.model import SamplingConfig, SamplingConfigError, SampleResult

logger = logging.getLogger(__name__)

TestFn = Callable[[str], Awaitable[Iterable[str]]]
ProgressFn = Callable[[str, int], None]


class AdaptiveSampler:
    """
    Decides how many pages of one page type get a full accessibility test.

    Despite the name this is not random sampling. URLs are consumed as a prefix of
    the type's pool in sitemap order: first `initial_sample_size` pages, then one
    page at a time until the violation sets look consistent, the pool runs out, or
    `max_sample_size` is reached. The same sitemap therefore always yields the same
    tested pages.

    Consistency compares every tested page against the *first* tested page only
    (anchor-to-first), not pairwise. Switching to pairwise comparison changes when
    sampling stops.
    """

    def __init__(self, config: Union[SamplingConfig, Mapping[str, Any]]):
        try:
            data = config.model_dump() if isinstance(config, SamplingConfig) else dict(config)
            self.config = SamplingConfig.model_validate(data)
        except (ValidationError, TypeError) as e:
            raise SamplingConfigError(f"Invalid sampling configuration: {e}") from e

    # --- Sample selection ---

    def get_initial_sample(self, urls: Sequence[str]) -> List[str]:
        sample_size = min(self.config.initial_sample_size, len(urls))
        return list(urls[:sample_size])

    def get_additional_sample(self, urls: Sequence[str], already_sampled: int) -> List[str]:
        remaining = len(urls) - already_sampled
        additional_needed = min(self.config.max_sample_size - already_sampled, remaining)
        if additional_needed <= 0:
            return []
        return list(urls[already_sampled:already_sampled + additional_needed])

    # --- Stopping policy ---

    def are_violations_consistent(self, violation_sets: Sequence[Iterable[str]]) -> bool:
        """
        Averages the Jaccard overlap of each set against the first set.
        Fewer than two sets is trivially consistent; two empty sets overlap fully.
        """
        if len(violation_sets) < 2:
            return True

        first_set = set(violation_sets[0])
        total_overlap = 0.0

        for current in violation_sets[1:]:
            current_set = set(current)
            union = first_set | current_set
            if not union:
                total_overlap += 1.0
                continue
            total_overlap += len(first_set & current_set) / len(union)

        avg_overlap = total_overlap / (len(violation_sets) - 1)
        return avg_overlap >= self.config.consistency_threshold

    def should_continue_sampling(self, urls_count: int, sampled_count: int, is_consistent: bool) -> bool:
        if sampled_count >= urls_count:
            return False
        if sampled_count >= self.config.max_sample_size:
            return False
        if is_consistent and sampled_count >= self.config.initial_sample_size:
            return False
        return True

    # --- Sampling loop ---

    async def _run_test(self, url: str, test_fn: TestFn) -> Set[str]:
        """A failing or timed-out test counts as a page without violations."""
        try:
            if self.config.test_timeout is not None:
                found = await asyncio.wait_for(test_fn(url), timeout=self.config.test_timeout)
            else:
                found = await test_fn(url)
            return set(found or ())
        except asyncio.TimeoutError:
            logger.warning("Test for %s timed out after %.1fs; counting as no violations.",
                           url, self.config.test_timeout)
        except Exception as e:
            logger.warning("Test for %s failed: %s; counting as no violations.", url, e)
        return set()

    async def sample(
            self,
            urls: Sequence[str],
            test_fn: TestFn,
            progress_callback: Optional[ProgressFn] = None,
    ) -> SampleResult:
        """
        Drives sampling for one page type. Pages are tested strictly one after
        another; each result is folded into the consistency check before the
        decision to test the next page is made.
        """
        result = SampleResult()
        is_consistent = True

        while self.should_continue_sampling(len(urls), result.samples_taken, is_consistent):
            url = urls[result.samples_taken]
            rule_ids = await self._run_test(url, test_fn)
            result.record(url, rule_ids)
            is_consistent = self.are_violations_consistent(result.page_violations)

            if progress_callback:
                progress_callback(url, result.samples_taken)

        logger.debug(
            "Sampling stopped after %d of %d pages (consistent=%s, %d distinct rules).",
            result.samples_taken, len(urls), is_consistent, len(result.violations)
        )
        return result
