"""Tracing pipeline for raster-to-vector conversion.

AIDEV-NOTE: This package orchestrates the conversion from decoded pixels
to colored vector paths. Organized into modular components:
- pipeline: Main TracePipeline orchestrator
- keying: Transparency detection and key color selection
- clustering: Clustering engine parameters and invocation
- emitter: Per-cluster path fitting into a PathCollection
- progress: Best-effort progress reporting
- svg_writer: SVG serialization
"""

from .pipeline import TracePipeline, trace, trace_to_svg
from .svg_writer import path_collection_to_svg

__all__ = ["TracePipeline", "path_collection_to_svg", "trace", "trace_to_svg"]
