"""Qt integration for running traces off the GUI thread."""

from vectortrace.ui.trace_thread import TraceThread

__all__ = ["TraceThread"]
