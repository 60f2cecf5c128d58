# src/auditor/testers/tester_base.py
from __future__ import annotations

from abc import ABC, abstractmethod

from auditor.model import TestResult

# Reported as the url of results produced from raw markup.
HTML_SOURCE_URL = "data:text/html"


class PageTester(ABC):
    """Interface for external accessibility engines that test one page at a time."""

    name: str = "tester"

    async def initialize(self) -> None:
        """Acquire engine resources (browser, session). Called once per audit."""

    async def close(self) -> None:
        """Release everything acquired in initialize()."""

    async def __aenter__(self) -> "PageTester":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @abstractmethod
    async def test_url(self, url: str) -> TestResult:
        """Load the page and return the violations the engine reports."""
        raise NotImplementedError

    async def test_html(self, html: str) -> TestResult:
        """Test a raw HTML document. Engines that cannot do this raise NotImplementedError."""
        raise NotImplementedError(f"{self.name} cannot test raw HTML")
