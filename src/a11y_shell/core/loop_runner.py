# src/a11y_shell/core/loop_runner.py
import asyncio
import sys
from typing import Any, Coroutine


def _setup_windows_event_loop_if_needed() -> None:
    """Playwright and asyncio subprocesses need the Proactor loop on Windows."""
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())


def run_on_main_loop(coro: Coroutine[Any, Any, Any]) -> Any:
    """
    Executes a coroutine on a fresh event loop and waits for the result.

    Args:
        coro: The coroutine to execute.

    Returns:
        Any: The result of the coroutine.
    """
    _setup_windows_event_loop_if_needed()
    return asyncio.run(coro)
