"""Translate a TracingConfig into clustering engine runs.

AIDEV-NOTE: Color mode clusters up to twice. The primary pass honours the
user's precision settings; in cutout mode its result is flattened back to
an image and re-clustered with fixed, strict settings so overlapping
shapes come out as separate pieces instead of nested layers. Pixels the
primary pass did not emit are transparent in the flattened image and
must stay out of the cutout output.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np

from vectortrace.models import (
    CLUSTER_BATCH_SIZE,
    CUTOUT_HIERARCHY_DEPTH,
    HIERARCHICAL_MAX,
    Color,
    Hierarchical,
    KeyingAction,
    PixelBuffer,
    RunnerConfig,
    TracingConfig,
)

if TYPE_CHECKING:
    from vectortrace.engines.base import Cluster, ClusteringEngine, ClusterView

logger = logging.getLogger(__name__)


def primary_runner_config(
    config: TracingConfig,
    image: PixelBuffer,
    key_color: Color | None,
) -> RunnerConfig:
    """Clustering parameters for the main color pass."""
    if config.hierarchical == Hierarchical.CUTOUT:
        keying_action = KeyingAction.KEEP
    else:
        keying_action = KeyingAction.DISCARD

    return RunnerConfig(
        diagonal=config.layer_difference == 0,
        hierarchical=HIERARCHICAL_MAX,
        batch_size=CLUSTER_BATCH_SIZE,
        good_min_area=config.filter_speckle_area,
        good_max_area=image.width * image.height,
        is_same_color_a=config.color_precision_loss,
        is_same_color_b=1,
        deepen_diff=config.layer_difference,
        hollow_neighbours=1,
        key_color=key_color,
        keying_action=keying_action,
    )


def cutout_runner_config(image: PixelBuffer, key_color: Color | None) -> RunnerConfig:
    """Fixed parameters for re-clustering a flattened cutout image."""
    return RunnerConfig(
        diagonal=False,
        hierarchical=CUTOUT_HIERARCHY_DEPTH,
        batch_size=CLUSTER_BATCH_SIZE,
        good_min_area=0,
        good_max_area=image.width * image.height,
        is_same_color_a=0,
        is_same_color_b=1,
        deepen_diff=0,
        hollow_neighbours=0,
        key_color=key_color,
        keying_action=KeyingAction.DISCARD,
        skip_transparent=True,
    )


def cluster_primary(
    engine: "ClusteringEngine",
    image: PixelBuffer,
    config: TracingConfig,
    key_color: Color | None,
) -> "ClusterView":
    runner_config = primary_runner_config(config, image, key_color)
    logger.debug(f"Primary clustering with {runner_config}")
    view = engine.cluster(image, runner_config)
    logger.info(f"Primary clustering produced {len(view.clusters_output)} clusters")
    return view


def recluster_cutout(
    engine: "ClusteringEngine",
    view: "ClusterView",
    key_color: Color | None,
) -> "ClusterView":
    flattened = view.to_color_image()
    runner_config = cutout_runner_config(flattened, key_color)
    logger.debug(f"Cutout re-clustering with {runner_config}")
    view = engine.cluster(flattened, runner_config)
    logger.info(f"Cutout re-clustering produced {len(view.clusters_output)} clusters")
    return view


def binarize(image: PixelBuffer) -> np.ndarray:
    """Black/white threshold on the red channel alone (red < 128 is black)."""
    return image.pixels[..., 0] < 128


def cluster_binary(engine: "ClusteringEngine", mask: np.ndarray) -> "list[Cluster]":
    clusters = engine.cluster_binary(mask, False)
    logger.info(f"Binary clustering produced {len(clusters)} clusters")
    return clusters
