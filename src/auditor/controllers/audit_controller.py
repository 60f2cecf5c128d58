import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from auditor.managers.audit_data_manager import AuditDataManager
from auditor.managers.progress_manager import ProgressManager
from auditor.model import AuditResult, PageTypeReport, Violation
from auditor.services.audit_runner_service import AuditRunner
from auditor.services.extrapolation_service import ExtrapolationService
from auditor.utils.run_timers import RunTimers
from classifier.model import PageTypeGroup, PageTypePattern
from classifier.services.page_type_aggregator_service import PageTypeAggregator
from classifier.services.url_classifier_service import UrlClassifier
from sampler.model import SamplingConfig
from sampler.services.adaptive_sampler_service import AdaptiveSampler

logger = logging.getLogger(__name__)


class AuditController:
    """
    Orchestrates one accessibility audit:

    1.  **Classify:** sitemap URLs are grouped into page types by URL pattern.
    2.  **Sample:** each type is tested page by page until its violations stabilise
        (`AdaptiveSampler`), every page going through both engines (`AuditRunner`).
    3.  **Extrapolate:** per-rule counts are projected onto the whole type.
    4.  **Persist:** reports are handed to the `AuditDataManager` when one is given.

    Page types are independent, so up to `type_concurrency` of them are sampled at
    the same time. Within a type pages are always tested one after another.
    """

    def __init__(
            self,
            runner: AuditRunner,
            patterns: Iterable[Union[PageTypePattern, Dict[str, Any]]],
            sampling_config: Union[SamplingConfig, Dict[str, Any]],
            data_manager: Optional[AuditDataManager] = None,
            type_concurrency: int = 1,
            show_progress: bool = True,
    ):
        self.runner = runner
        self.sampler = AdaptiveSampler(sampling_config)
        self.classifier = UrlClassifier(patterns)
        self.aggregator = PageTypeAggregator(self.classifier)
        self.extrapolation = ExtrapolationService()
        self.data_manager = data_manager
        self.type_concurrency = max(1, int(type_concurrency))
        self.show_progress = show_progress
        self.timer = RunTimers()
        self.audit_id: Optional[str] = None

    async def _audit_page_type(self, group: PageTypeGroup, semaphore: asyncio.Semaphore) -> PageTypeReport:
        async with semaphore:
            details: Dict[str, List[Violation]] = {}

            async def test_fn(url: str) -> List[str]:
                merged = await self.runner.test_url_and_merge(url)
                details[url] = merged.violations
                return [v.id for v in merged.violations]

            cap = min(self.sampler.config.max_sample_size, group.total_count)
            progress = ProgressManager(total=cap, desc=group.type, disable=not self.show_progress)
            seen_rules = set()
            tested = 0

            def on_tested(url: str, count: int) -> None:
                nonlocal tested
                tested = count
                seen_rules.update(v.id for v in details.get(url, ()))
                progress.advance(rules_count=len(seen_rules))

            logger.info("Testing %s (%d total pages)...", group.type, group.total_count)
            try:
                sample = await self.sampler.sample(group.urls, test_fn, progress_callback=on_tested)
            finally:
                progress.close(tested, stopped_early=tested < cap)

            logger.info(
                "  %s: tested %d of %d pages, %d unique violation types",
                group.type, sample.samples_taken, group.total_count, len(sample.violations)
            )
            return self.extrapolation.build_report(group, sample, details)

    async def run(self, site_url: str, urls: Sequence[Any], config_used: Optional[Dict[str, Any]] = None) -> AuditResult:
        """
        Runs the audit over an already fetched sitemap URL list.

        Args:
            site_url: The audited website, stored with the audit record.
            urls: Sitemap entries (SitemapUrl objects, dicts with 'loc', or strings).
            config_used: Configuration snapshot stored with the audit record.
        """
        self.timer.start()
        if self.data_manager:
            self.audit_id = self.data_manager.create_audit(site_url, config_used)

        try:
            groups = self.aggregator.aggregate(urls)
            for group in groups:
                logger.info("   %s: %d pages", group.type, group.total_count)

            semaphore = asyncio.Semaphore(self.type_concurrency)
            reports = await asyncio.gather(
                *(self._audit_page_type(group, semaphore) for group in groups)
            )

            result = AuditResult(
                audit_id=self.audit_id,
                url=site_url,
                total_urls=len(urls),
                page_types=list(reports),
            )
            self._persist(result)
        except Exception:
            self.timer.stop()
            self._mark_failed()
            raise

        self.timer.stop()
        result.duration_seconds = round(self.timer.duration, 2)
        if self.data_manager and self.audit_id:
            self.data_manager.update_audit_status(
                self.audit_id, "completed",
                duration_seconds=int(self.timer.duration),
                total_violations=result.total_extrapolated,
            )
        logger.info(
            "Audit finished in %.2fs: %d page types, %d extrapolated violations.",
            result.duration_seconds, len(result.page_types), result.total_extrapolated
        )
        return result

    def _persist(self, result: AuditResult) -> None:
        if not (self.data_manager and self.audit_id):
            return
        logger.info("Saving results to database...")
        for report in result.page_types:
            self.data_manager.save_page_type_report(self.audit_id, report)

    def _mark_failed(self) -> None:
        if not (self.data_manager and self.audit_id):
            return
        try:
            self.data_manager.update_audit_status(self.audit_id, "failed")
        except Exception as e:
            logger.error("Failed to update audit status: %s", e, exc_info=True)
