# src/coverage_enhancer/core/managers/progress_manager.py
import sys
import logging
from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the complete lifecycle of a tqdm progress bar over report files.
    """

    def __init__(self, total: int, desc: str, unit: str = "file", disable: bool = False):
        self.pbar = tqdm(
            total=max(total, 0),
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            mininterval=0.5,
            postfix={"failures": 0},
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}] {postfix}",
            file=sys.stderr,
            disable=disable,
        )

    def advance(self, steps: int = 1, failures_count: int = None):
        """Increments the progress bar and updates the failure counter."""
        self.pbar.update(steps)
        if failures_count is not None:
            self.pbar.set_postfix({"failures": failures_count}, refresh=False)

    def close(self, final_failures: int = 0):
        try:
            self.pbar.set_postfix({"failures": final_failures}, refresh=True)
            self.pbar.close()
            logger.debug("ProgressManager: Progress bar closed.")
        except (AttributeError, ValueError) as e:
            logger.error(f"Error encountered while closing progress bar: {e}")
