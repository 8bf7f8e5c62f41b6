"""Background tracing for Qt applications."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from vectortrace.errors import TraceError
from vectortrace.models import TraceOptions
from vectortrace.tracing import TracePipeline

logger = logging.getLogger(__name__)


class TraceThread(QThread):
    """Background thread for tracing to avoid blocking the UI."""

    finished = pyqtSignal(object)  # PathCollection
    error = pyqtSignal(str)  # Error message
    progress = pyqtSignal(int)  # Progress percentage

    def __init__(
        self,
        data: bytes,
        options: TraceOptions | None = None,
        pipeline: TracePipeline | None = None,
    ):
        super().__init__()
        self.data = data
        self.options = options
        self.pipeline = pipeline or TracePipeline()

    def _on_progress(self, percent: float):
        self.progress.emit(int(percent))

    def run(self):
        """Execute tracing in background."""
        try:
            result = self.pipeline.trace(self.data, self.options, self._on_progress)
            self.finished.emit(result)

        except TraceError as e:
            self.error.emit(str(e))
        except Exception as e:
            logger.exception("Unexpected tracing failure")
            self.error.emit(str(e))
