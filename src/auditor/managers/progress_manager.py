# src/auditor/managers/progress_manager.py
import logging
import sys
from typing import Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the lifecycle of a tqdm progress bar for the pages tested of one page type.
    The total is the type's page cap; sampling may finish early when results stabilise.
    """

    def __init__(self, total: int, desc: str, unit: str = "page", disable: bool = False):
        if total <= 0:
            total = 1

        self.pbar: Optional[tqdm] = tqdm(
            total=total,
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            smoothing=0.1,
            mininterval=0.5,
            postfix={"rules": 0},
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}] {postfix}",
            file=sys.stdout,
            disable=disable,
        )

    def advance(self, steps: int = 1, rules_count: Optional[int] = None):
        """Increments the bar and updates the distinct-rule counter."""
        if not self.pbar:
            return
        self.pbar.update(steps)
        if rules_count is not None:
            self.pbar.set_postfix({"rules": rules_count}, refresh=False)

    def close(self, tested: int, stopped_early: bool = False):
        """Closes the bar, noting whether sampling stopped before the cap."""
        if not self.pbar:
            return
        try:
            if stopped_early:
                self.pbar.total = tested
            self.pbar.set_postfix({"tested": tested, "early_stop": stopped_early}, refresh=True)
            self.pbar.close()
        except Exception as e:
            logger.error(f"Error encountered while closing progress bar: {e}")
        finally:
            self.pbar = None
