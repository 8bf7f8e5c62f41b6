"""Emit fitted paths for clusters into a PathCollection."""

import logging
from typing import TYPE_CHECKING, Sequence

from vectortrace.models import BLACK, FitParams, PathCollection, TracingConfig

from . import progress as checkpoints
from .progress import ProgressReporter

if TYPE_CHECKING:
    from vectortrace.engines.base import Cluster, ClusterView, FittingEngine

logger = logging.getLogger(__name__)


def fit_params(config: TracingConfig) -> FitParams:
    """Curve fitting parameters shared by both pipelines."""
    return FitParams(
        mode=config.mode,
        corner_threshold=config.corner_threshold_rad,
        length_threshold=config.length_threshold,
        max_iterations=config.max_iterations,
        splice_threshold=config.splice_threshold_rad,
    )


def emit_color_paths(
    view: "ClusterView",
    fitter: "FittingEngine",
    config: TracingConfig,
    collection: PathCollection,
    reporter: ProgressReporter,
) -> None:
    """Fit every output cluster, last cluster first.

    AIDEV-NOTE: The engine lists foreground clusters first. Emitting in
    reverse puts background shapes at the start of the collection so they
    are painted underneath.
    """
    params = fit_params(config)
    indices = list(view.clusters_output)
    total = len(indices)

    for done, index in enumerate(reversed(indices), start=1):
        cluster = view.get_cluster(index)
        path = fitter.fit(cluster.shape, params)
        collection.add_path(path, cluster.residue_color)
        reporter.report_step(checkpoints.RECLUSTERED, checkpoints.PATHS_DONE, done, total)

    logger.debug(f"Emitted {total} color paths")


def emit_binary_paths(
    clusters: "Sequence[Cluster]",
    fitter: "FittingEngine",
    config: TracingConfig,
    collection: PathCollection,
    reporter: ProgressReporter,
) -> None:
    """Fit every cluster at least ``filter_speckle`` squared in area, in order."""
    params = fit_params(config)
    min_area = config.filter_speckle_area
    total = len(clusters)
    dropped = 0

    for done, cluster in enumerate(clusters, start=1):
        if cluster.area >= min_area:
            path = fitter.fit(cluster.shape, params)
            collection.add_path(path, BLACK)
        else:
            dropped += 1
        reporter.report_step(
            checkpoints.BINARY_CLUSTERED, checkpoints.PATHS_DONE, done, total
        )

    logger.debug(f"Emitted {total - dropped} binary paths, dropped {dropped} speckles")
