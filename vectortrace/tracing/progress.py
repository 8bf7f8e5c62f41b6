"""Best-effort progress reporting.

AIDEV-NOTE: The sink is an observer only. Whatever it raises is logged and
dropped so a broken progress bar can never fail a conversion.
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

# Pipeline checkpoints (percent)
STARTED = 0.0
DECODED = 5.0
CONFIGURED = 10.0
KEYED = 15.0
CLUSTERED = 50.0
RECLUSTERED = 55.0
BINARIZED = 15.0
BINARY_CLUSTERED = 40.0
PATHS_DONE = 95.0
FINISHED = 100.0


class ProgressReporter:
    """Forwards percentages to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback

    def report(self, percent: float) -> None:
        if self.callback is None:
            return
        try:
            self.callback(percent)
        except Exception:
            logger.debug(f"Progress callback failed at {percent:.1f}%", exc_info=True)

    def report_step(self, start: float, end: float, done: int, total: int) -> None:
        """Report the fraction ``done / total`` of the span start..end."""
        if total > 0:
            self.report(start + done / total * (end - start))
