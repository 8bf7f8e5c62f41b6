"""Main tracing pipeline orchestrating decode, keying, clustering and fitting.

AIDEV-NOTE: Everything here is sequential. Progress is reported at fixed
checkpoints (see progress.py); the values a caller sees during one call
never decrease and always end at exactly 100.
"""

import io
import logging

import numpy as np
from PIL import Image

from vectortrace.config import resolve_config
from vectortrace.errors import DecodeError
from vectortrace.models import (
    ColorMode,
    Hierarchical,
    PathCollection,
    PixelBuffer,
    TraceOptions,
    TracingConfig,
)

from . import progress as checkpoints
from .clustering import binarize, cluster_binary, cluster_primary, recluster_cutout
from .emitter import emit_binary_paths, emit_color_paths
from .keying import apply_key_color, find_unused_color, should_key_image
from .progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)


class TracePipeline:
    """Traces raster images into colored vector paths."""

    def __init__(self, clustering=None, fitting=None):
        """Create a pipeline.

        Args:
            clustering: ClusteringEngine, defaults to ColorClusterEngine
            fitting: FittingEngine, defaults to CurveFitter
        """
        if clustering is None:
            from vectortrace.engines.color_clusters import ColorClusterEngine

            clustering = ColorClusterEngine()
        if fitting is None:
            from vectortrace.engines.fitting import CurveFitter

            fitting = CurveFitter()
        self.clustering = clustering
        self.fitting = fitting

    def load_image(self, data: bytes) -> PixelBuffer:
        """Decode encoded image bytes into an RGBA pixel buffer.

        Args:
            data: Raw image file contents (PNG, JPG, BMP, etc.)

        Returns:
            PixelBuffer with RGBA8 pixels

        Raises:
            DecodeError: If the bytes cannot be decoded as an image
        """
        try:
            image = Image.open(io.BytesIO(data))
            # AIDEV-NOTE: Always convert to RGBA for consistent processing
            if image.mode != "RGBA":
                image = image.convert("RGBA")
            pixels = np.array(image, dtype=np.uint8)
        except Exception as e:
            raise DecodeError(f"Failed to decode image: {e}") from e

        width, height = image.size
        return PixelBuffer(pixels, width, height)

    def trace(
        self,
        data: bytes,
        options: TraceOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> PathCollection:
        """Decode and trace an encoded image.

        Args:
            data: Raw image file contents
            options: Tracing options, defaults for anything left unset
            progress: Optional callback receiving percentages 0-100

        Returns:
            PathCollection in paint order

        Raises:
            DecodeError: If the image cannot be decoded
            ConfigError: If an option has an unknown value
            KeyColorError: If no free key color exists for keying
        """
        reporter = ProgressReporter(progress)
        collection = self._run(data, None, options, reporter)
        reporter.report(checkpoints.FINISHED)
        return collection

    def trace_to_svg(
        self,
        data: bytes,
        options: TraceOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Like :meth:`trace`, but serialize the result to an SVG string."""
        reporter = ProgressReporter(progress)
        collection = self._run(data, None, options, reporter)
        result = collection.to_svg()
        reporter.report(checkpoints.FINISHED)
        return result

    def trace_pixels(
        self,
        image: PixelBuffer,
        options: TraceOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> PathCollection:
        """Trace an already decoded pixel buffer.

        The buffer is modified in place when keying is needed.
        """
        reporter = ProgressReporter(progress)
        collection = self._run(None, image, options, reporter)
        reporter.report(checkpoints.FINISHED)
        return collection

    def _run(
        self,
        data: bytes | None,
        image: PixelBuffer | None,
        options: TraceOptions | None,
        reporter: ProgressReporter,
    ) -> PathCollection:
        logger.info("Starting tracing pipeline...")
        reporter.report(checkpoints.STARTED)

        if image is None:
            image = self.load_image(data)
        logger.info(f"Loaded image with size: {image.width}x{image.height} pixels.")
        reporter.report(checkpoints.DECODED)

        config = resolve_config(options)
        reporter.report(checkpoints.CONFIGURED)

        if config.color_mode == ColorMode.COLOR:
            logger.info("Tracing in color mode...")
            collection = self._trace_color(image, config, reporter)
        else:
            logger.info("Tracing in binary mode...")
            collection = self._trace_binary(image, config, reporter)

        reporter.report(checkpoints.PATHS_DONE)
        logger.info(f"Tracing complete. Total paths: {len(collection)}")
        return collection

    def _trace_color(
        self,
        image: PixelBuffer,
        config: TracingConfig,
        reporter: ProgressReporter,
    ) -> PathCollection:
        width, height = image.width, image.height

        key_color = None
        if should_key_image(image):
            key_color = find_unused_color(image)
            replaced = apply_key_color(image, key_color)
            logger.info(f"Keyed {replaced} transparent pixels with {key_color.to_hex()}")
        reporter.report(checkpoints.KEYED)

        view = cluster_primary(self.clustering, image, config, key_color)
        reporter.report(checkpoints.CLUSTERED)

        if config.hierarchical == Hierarchical.CUTOUT:
            view = recluster_cutout(self.clustering, view, key_color)
        reporter.report(checkpoints.RECLUSTERED)

        collection = PathCollection(width, height, config.path_precision)
        emit_color_paths(view, self.fitting, config, collection, reporter)
        return collection

    def _trace_binary(
        self,
        image: PixelBuffer,
        config: TracingConfig,
        reporter: ProgressReporter,
    ) -> PathCollection:
        mask = binarize(image)
        reporter.report(checkpoints.BINARIZED)

        clusters = cluster_binary(self.clustering, mask)
        reporter.report(checkpoints.BINARY_CLUSTERED)

        collection = PathCollection(image.width, image.height, config.path_precision)
        emit_binary_paths(clusters, self.fitting, config, collection, reporter)
        return collection


def trace(
    data: bytes,
    options: TraceOptions | None = None,
    progress: ProgressCallback | None = None,
) -> PathCollection:
    """Trace encoded image bytes with the default engines."""
    return TracePipeline().trace(data, options, progress)


def trace_to_svg(
    data: bytes,
    options: TraceOptions | None = None,
    progress: ProgressCallback | None = None,
) -> str:
    """Trace encoded image bytes straight to an SVG document string."""
    return TracePipeline().trace_to_svg(data, options, progress)
