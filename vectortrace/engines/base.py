"""Interfaces for the clustering and curve fitting engines.

AIDEV-NOTE: The orchestration code only talks to engines through these
protocols so tests can swap in tiny stubs. Anything with matching methods
works - no subclassing required.
"""

from typing import Protocol, Sequence

import numpy as np

from vectortrace.models import (
    ClusterShape,
    Color,
    CompoundPath,
    FitParams,
    PixelBuffer,
    RunnerConfig,
)


class Cluster(Protocol):
    """A single region produced by a clustering pass."""

    @property
    def shape(self) -> ClusterShape: ...

    @property
    def area(self) -> int: ...

    @property
    def residue_color(self) -> Color: ...


class ClusterView(Protocol):
    """Read-only view over the output of a color clustering pass.

    ``clusters_output`` lists cluster indices in the engine's native order,
    foreground (small, late) clusters first.
    """

    width: int
    height: int

    @property
    def clusters_output(self) -> "Sequence[int]": ...

    def get_cluster(self, index: int) -> Cluster: ...

    def to_color_image(self) -> PixelBuffer: ...


class ClusteringEngine(Protocol):
    """Groups pixels into clusters."""

    def cluster(self, image: PixelBuffer, config: RunnerConfig) -> ClusterView:
        """Run one hierarchical color clustering pass."""
        ...

    def cluster_binary(self, mask: np.ndarray, diagonal: bool) -> "list[Cluster]":
        """Label connected ``True`` regions of a boolean image, unfiltered."""
        ...


class FittingEngine(Protocol):
    """Turns a cluster boundary into a compound path."""

    def fit(self, shape: ClusterShape, params: FitParams) -> CompoundPath: ...
