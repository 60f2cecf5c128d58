# src/auditor/testers/pa11y_tester.py
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from auditor.model import TestResult, Violation, ViolationNode
from auditor.testers.tester_base import HTML_SOURCE_URL, PageTester

logger = logging.getLogger(__name__)

IMPACT_MAP = {
    "error": "critical",
    "warning": "serious",
    "notice": "moderate",
}

DEFAULT_COMMAND = ("npx", "pa11y", "--reporter", "json")


def map_pa11y_issue(issue: Dict[str, Any]) -> Violation:
    """pa11y reports one issue per element; its code doubles as the rule id."""
    issue_type = issue.get("type") or ""
    message = issue.get("message") or ""
    return Violation(
        id=issue.get("code", ""),
        impact=IMPACT_MAP.get(issue_type, "minor"),
        description=message,
        help=message,
        help_url=None,
        tags=[issue_type] if issue_type else [],
        nodes=[ViolationNode(
            html=issue.get("context") or "",
            target=issue.get("selector") or "",
            failure_summary=message,
        )],
    )


def parse_pa11y_output(url: str, stdout: str) -> TestResult:
    """
    Parses the JSON reporter output. pa11y prints a bare list of issues, older
    versions wrap them in {"issues": [...]}.
    """
    payload = json.loads(stdout) if stdout.strip() else []
    issues: List[Dict[str, Any]] = payload.get("issues", []) if isinstance(payload, dict) else payload
    return TestResult(
        url=url,
        violations=[map_pa11y_issue(issue) for issue in issues],
        passes=0,  # pa11y does not report passes
        incomplete=0,
    )


class Pa11yTester(PageTester):
    """Runs the pa11y CLI as a subprocess and maps its JSON report."""

    name = "pa11y"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.command: Sequence[str] = tuple(config.get("pa11y_command") or DEFAULT_COMMAND)
        self.timeout_ms = int(config.get("page_timeout_ms", 30000))

    async def _run(self, target: str) -> Tuple[int, bytes, bytes]:
        args = [*self.command, "--timeout", str(self.timeout_ms), target]
        logger.debug("Running: %s", " ".join(args))

        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # A cancelled page test (sampling timeout) must not leave pa11y and its browser behind.
            if process.returncode is None:
                logger.debug("Killing pa11y (pid %s) for %s", process.pid, target)
                process.kill()
                await process.wait()
            raise
        return process.returncode, stdout, stderr

    async def _test(self, target: str, url: str) -> TestResult:
        returncode, stdout, stderr = await self._run(target)

        # pa11y exits with 2 when it found issues; anything else non-zero is a failure.
        if returncode not in (0, 2):
            raise RuntimeError(
                f"pa11y exited with {returncode} for {url}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )

        try:
            return parse_pa11y_output(url, stdout.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Could not parse pa11y output for {url}: {e}") from e

    async def test_url(self, url: str) -> TestResult:
        return await self._test(url, url)

    async def test_html(self, html: str) -> TestResult:
        """pa11y only loads URLs, so the markup goes through a temporary file."""
        fd, temp_name = tempfile.mkstemp(prefix="pa11y-", suffix=".html")
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(html)
            return await self._test(temp_path.as_uri(), HTML_SOURCE_URL)
        finally:
            temp_path.unlink(missing_ok=True)
