import asyncio
import logging
from typing import Tuple

from auditor.model import MergedTestResult, TestResult
from auditor.services.violation_merge_service import merge_violations
from auditor.testers.tester_base import PageTester

logger = logging.getLogger(__name__)


class AuditRunner:
    """
    Runs the primary and secondary accessibility engines against the same page
    and merges their findings.

    Owns the lifetime of both testers (and so of any browser they launch); use
    it as an async context manager bounding one audit run.
    """

    def __init__(self, primary: PageTester, secondary: PageTester):
        self.primary = primary
        self.secondary = secondary

    async def __aenter__(self) -> "AuditRunner":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def initialize(self) -> None:
        await asyncio.gather(self.primary.initialize(), self.secondary.initialize())
        logger.debug("Test engines initialized: %s + %s", self.primary.name, self.secondary.name)

    async def close(self) -> None:
        results = await asyncio.gather(
            self.primary.close(), self.secondary.close(), return_exceptions=True
        )
        for tester, outcome in zip((self.primary, self.secondary), results):
            if isinstance(outcome, Exception):
                logger.error("Error closing %s tester: %s", tester.name, outcome)

    async def test_url(self, url: str) -> Tuple[TestResult, TestResult]:
        """Both engines run concurrently; either failing fails the page."""
        primary_result, secondary_result = await asyncio.gather(
            self.primary.test_url(url),
            self.secondary.test_url(url),
        )
        return primary_result, secondary_result

    async def test_html(self, html: str) -> Tuple[TestResult, TestResult]:
        """Same as test_url, for a document that has no URL of its own."""
        primary_result, secondary_result = await asyncio.gather(
            self.primary.test_html(html),
            self.secondary.test_html(html),
        )
        return primary_result, secondary_result

    @staticmethod
    def _merge(primary_result: TestResult, secondary_result: TestResult) -> MergedTestResult:
        return MergedTestResult(
            url=primary_result.url,
            violations=merge_violations(primary_result.violations, secondary_result.violations),
        )

    async def test_url_and_merge(self, url: str) -> MergedTestResult:
        return self._merge(*await self.test_url(url))

    async def test_html_and_merge(self, html: str) -> MergedTestResult:
        return self._merge(*await self.test_html(html))
