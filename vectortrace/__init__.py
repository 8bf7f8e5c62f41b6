"""vectortrace - convert raster images into colored vector paths."""

from vectortrace.errors import ConfigError, DecodeError, KeyColorError, TraceError
from vectortrace.models import PathCollection, TraceOptions, TracingConfig
from vectortrace.tracing import TracePipeline, trace, trace_to_svg

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DecodeError",
    "KeyColorError",
    "PathCollection",
    "TraceError",
    "TraceOptions",
    "TracePipeline",
    "TracingConfig",
    "trace",
    "trace_to_svg",
]
