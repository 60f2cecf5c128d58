# src/auditor/testers/axe_tester.py
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, Page, Playwright

from auditor.model import TestResult, Violation, ViolationNode
from auditor.testers.tester_base import HTML_SOURCE_URL, PageTester
from auditor.utils.axe_script import DEFAULT_AXE_SCRIPT_URL, ensure_axe_script

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--force-color-profile=srgb",
    "--disable-web-security",
]

RUN_AXE_JS = """
async () => {
    if (!window.axe || !axe.run) {
        return {error: 'axe not loaded'};
    }
    return await axe.run(document);
}
"""


def map_axe_results(url: str, results: Dict[str, Any]) -> TestResult:
    """Converts a raw axe.run() result object into a TestResult."""
    violations: List[Violation] = []
    for v in results.get("violations", []):
        violations.append(Violation(
            id=v.get("id", ""),
            impact=v.get("impact"),
            description=v.get("description", ""),
            help=v.get("help", ""),
            help_url=v.get("helpUrl"),
            tags=list(v.get("tags", [])),
            nodes=[
                ViolationNode(
                    html=n.get("html"),
                    target=n.get("target", ""),
                    failure_summary=n.get("failureSummary"),
                )
                for n in v.get("nodes", [])
            ],
        ))
    return TestResult(
        url=url,
        violations=violations,
        passes=len(results.get("passes", [])),
        incomplete=len(results.get("incomplete", [])),
    )


class AxeTester(PageTester):
    """
    Runs axe-core inside a headless Chromium driven by Playwright.
    The browser lives from initialize() to close(); every test gets a fresh page.
    """

    name = "axe"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.axe_script_path: Optional[Path] = (
            Path(config["axe_script_path"]) if config.get("axe_script_path") else None
        )
        self.axe_script_url: Optional[str] = config.get("axe_script_url", DEFAULT_AXE_SCRIPT_URL)
        self.timeout_ms = int(config.get("page_timeout_ms", 30000))
        self.headless = bool(config.get("headless", True))
        self.viewport = config.get("viewport") or {"width": 1280, "height": 800}
        self.user_agent = config.get("user_agent", DEFAULT_USER_AGENT)

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def initialize(self) -> None:
        if self.browser:
            return
        self.axe_script_path = await ensure_axe_script(self.axe_script_path, self.axe_script_url)
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
        logger.debug("AxeTester browser launched (headless=%s).", self.headless)

    async def close(self) -> None:
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def _analyze(self, url: str, load: Callable[[Page], Awaitable[Any]]) -> TestResult:
        if not self.browser:
            raise RuntimeError("Browser not initialized. Call initialize() first.")

        context = await self.browser.new_context(viewport=self.viewport, user_agent=self.user_agent)
        page = await context.new_page()
        try:
            page.set_default_timeout(self.timeout_ms)
            await load(page)
            await page.add_script_tag(path=str(self.axe_script_path))
            results = await page.evaluate(RUN_AXE_JS)
        finally:
            await context.close()

        if not isinstance(results, dict) or results.get("error"):
            error = results.get("error") if isinstance(results, dict) else "unexpected axe result"
            raise RuntimeError(f"axe.run failed on {url}: {error}")

        return map_axe_results(url, results)

    async def test_url(self, url: str) -> TestResult:
        return await self._analyze(
            url, lambda page: page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
        )

    async def test_html(self, html: str) -> TestResult:
        return await self._analyze(HTML_SOURCE_URL, lambda page: page.set_content(html))
