"""Default clustering engine built on numpy and scipy.

Color clustering runs in four steps:
    1. Quantize each pixel's RGB by ``is_same_color_a`` bits and label
       connected runs of identical values (4- or 8-connectivity)
    2. Merge neighbouring regions whose quantized colors differ by at most
       ``is_same_color_b`` per channel
    3. Absorb regions smaller than ``good_min_area`` into their closest
       colored neighbour (speckle removal)
    4. Merge neighbours closer than ``deepen_diff`` for up to
       ``hierarchical`` passes (gradient layering)

Key-colored pixels form their own regions which never merge with anything.
With ``skip_transparent`` set, fully transparent pixels are treated the same
way and then dropped whatever the keying action.
Output clusters are ordered by ascending area, foreground first.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import ndimage, sparse
from scipy.sparse import csgraph

from vectortrace.models import (
    BLACK,
    ClusterShape,
    Color,
    KeyingAction,
    PixelBuffer,
    RunnerConfig,
)

logger = logging.getLogger(__name__)

_FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)
_EIGHT_CONNECTED = ndimage.generate_binary_structure(2, 2)


@dataclass
class ColorCluster:
    """A cluster as handed to the path emitter."""

    shape: ClusterShape
    area: int
    residue_color: Color


def _neighbour_slices(diagonal: bool):
    """Pairs of array slices selecting each pixel and its next neighbour."""
    slices = [
        ((slice(None), slice(None, -1)), (slice(None), slice(1, None))),
        ((slice(None, -1), slice(None)), (slice(1, None), slice(None))),
    ]
    if diagonal:
        slices.append(((slice(None, -1), slice(None, -1)), (slice(1, None), slice(1, None))))
        slices.append(((slice(None, -1), slice(1, None)), (slice(1, None), slice(None, -1))))
    return slices


def label_equal_regions(values: np.ndarray, diagonal: bool) -> "tuple[np.ndarray, int]":
    """Label connected regions of identical values.

    Args:
        values: 2D integer array
        diagonal: Whether diagonal neighbours are connected

    Returns:
        Tuple of (label array, number of labels); labels are numbered in
        raster order of each region's first pixel
    """
    height, width = values.shape
    index = np.arange(height * width).reshape(height, width)

    sources = []
    targets = []
    for first, second in _neighbour_slices(diagonal):
        same = values[first] == values[second]
        sources.append(index[first][same])
        targets.append(index[second][same])

    src = np.concatenate(sources)
    dst = np.concatenate(targets)
    graph = sparse.coo_matrix(
        (np.ones(len(src), dtype=np.int8), (src, dst)),
        shape=(height * width, height * width),
    )
    count, labels = csgraph.connected_components(graph, directed=False)
    return labels.reshape(height, width), count


def _adjacent_pairs(labels: np.ndarray, diagonal: bool) -> np.ndarray:
    """Unique (a, b) pairs of touching labels with a < b."""
    firsts = []
    seconds = []
    for first, second in _neighbour_slices(diagonal):
        a = labels[first].ravel()
        b = labels[second].ravel()
        differ = a != b
        firsts.append(a[differ])
        seconds.append(b[differ])

    pairs = np.stack([np.concatenate(firsts), np.concatenate(seconds)], axis=1)
    if len(pairs) == 0:
        return pairs
    return np.unique(np.sort(pairs, axis=1), axis=0)


class _RegionGraph:
    """Union-find over labelled regions with area, color and adjacency."""

    def __init__(self, labels: np.ndarray, count: int, rgb: np.ndarray, key_mask: np.ndarray, diagonal: bool):
        flat = labels.ravel()
        self.parent = list(range(count))
        self.area = np.bincount(flat, minlength=count).astype(np.int64)
        self.color_sum = np.stack(
            [np.bincount(flat, weights=rgb[..., c].ravel(), minlength=count) for c in range(3)],
            axis=1,
        )
        self.keyed = np.bincount(flat, weights=key_mask.ravel(), minlength=count) > 0
        self.neighbours: "list[set[int]]" = [set() for _ in range(count)]
        for a, b in _adjacent_pairs(labels, diagonal):
            self.neighbours[a].add(int(b))
            self.neighbours[b].add(int(a))

    def find(self, i: int) -> int:
        root = i
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[i] != root:
            self.parent[i], i = root, self.parent[i]
        return root

    def roots(self) -> "list[int]":
        return [i for i, p in enumerate(self.parent) if i == p]

    def mean_color(self, i: int) -> np.ndarray:
        return self.color_sum[i] / max(self.area[i], 1)

    def distance(self, a: int, b: int) -> float:
        return float(np.max(np.abs(self.mean_color(a) - self.mean_color(b))))

    def union(self, keep: int, absorb: int) -> None:
        self.parent[absorb] = keep
        self.area[keep] += self.area[absorb]
        self.color_sum[keep] += self.color_sum[absorb]
        for other in self.neighbours[absorb]:
            self.neighbours[other].discard(absorb)
            if other != keep:
                self.neighbours[other].add(keep)
                self.neighbours[keep].add(other)
        self.neighbours[keep].discard(absorb)
        self.neighbours[absorb] = set()

    def merge_pair(self, a: int, b: int) -> int:
        """Merge two roots, the larger one survives. Returns the survivor."""
        if self.area[a] < self.area[b]:
            a, b = b, a
        self.union(a, b)
        return a

    def closest_neighbour(self, i: int) -> "tuple[int | None, float]":
        best = None
        best_distance = float("inf")
        for other in sorted(self.neighbours[i]):
            if self.keyed[other]:
                continue
            d = self.distance(i, other)
            if d < best_distance:
                best, best_distance = other, d
        return best, best_distance


class ColorClusterView:
    """Result of one color clustering pass."""

    def __init__(
        self,
        width: int,
        height: int,
        labels: np.ndarray | None = None,
        clusters: "list[tuple[int, int, Color]]" = (),
        output: "list[int]" = (),
        discarded: np.ndarray | None = None,
        fill_holes: bool = False,
    ):
        self.width = width
        self.height = height
        self._labels = labels
        self._clusters = list(clusters)  # (root label, area, residue color)
        self._output = list(output)
        self._discarded = discarded
        self._fill_holes = fill_holes
        self._objects = None

    @property
    def clusters_output(self) -> "list[int]":
        return self._output

    def __len__(self) -> int:
        return len(self._clusters)

    def _shape(self, root: int) -> ClusterShape:
        if self._objects is None:
            self._objects = ndimage.find_objects(self._labels + 1)
        rows, cols = self._objects[root]
        mask = self._labels[rows, cols] == root

        if self._fill_holes:
            filled = ndimage.binary_fill_holes(mask)
            holes = filled & ~mask
            if holes.any():
                hole_labels, _ = ndimage.label(holes)
                blocked = np.unique(hole_labels[holes & self._discarded[rows, cols]])
                mask = mask | (holes & ~np.isin(hole_labels, blocked))

        return ClusterShape(mask=mask, offset_x=cols.start, offset_y=rows.start)

    def get_cluster(self, index: int) -> ColorCluster:
        root, area, color = self._clusters[index]
        return ColorCluster(shape=self._shape(root), area=area, residue_color=color)

    def to_color_image(self) -> PixelBuffer:
        """Paint every output cluster with its residue color.

        Pixels that belong to no output cluster stay transparent black.
        """
        if self._labels is None or not self._clusters:
            return PixelBuffer.blank(self.width, self.height)

        lut = np.zeros((int(self._labels.max()) + 1, 4), dtype=np.uint8)
        for index in self._output:
            root, _, color = self._clusters[index]
            lut[root] = (*color.as_tuple(), 255)
        return PixelBuffer(lut[self._labels], self.width, self.height)


@dataclass
class BinaryCluster:
    """A connected region of a binary image."""

    shape: ClusterShape
    area: int
    residue_color: Color = BLACK


class ColorClusterEngine:
    """Default ClusteringEngine implementation."""

    def cluster(self, image: PixelBuffer, config: RunnerConfig) -> ColorClusterView:
        width, height = image.width, image.height
        if width == 0 or height == 0:
            return ColorClusterView(width, height)

        rgb = image.pixels[..., :3].astype(np.int64)
        shift = min(max(config.is_same_color_a, 0), 8)
        quantized = rgb >> shift

        if config.key_color is not None:
            key_mask = np.all(rgb == np.array(config.key_color.as_tuple()), axis=-1)
        else:
            key_mask = np.zeros((height, width), dtype=bool)

        if config.skip_transparent:
            skip_mask = image.pixels[..., 3] == 0
        else:
            skip_mask = np.zeros((height, width), dtype=bool)

        packed = (quantized[..., 0] << 16) | (quantized[..., 1] << 8) | quantized[..., 2]
        packed[key_mask] = -1
        packed[skip_mask] = -2

        labels, count = label_equal_regions(packed, config.diagonal)
        logger.debug(f"Labelled {count} initial regions (batch size {config.batch_size})")

        # Skipped regions are held apart like keyed ones, then always dropped
        graph = _RegionGraph(labels, count, rgb, key_mask | skip_mask, config.diagonal)
        skipped = np.bincount(labels.ravel(), weights=skip_mask.ravel(), minlength=count) > 0
        self._merge_same_color(graph, shift, config.is_same_color_b)
        self._merge_speckles(graph, config.good_min_area)
        self._deepen(graph, config.deepen_diff, config.hierarchical)

        roots = graph.roots()
        root_of = np.array([graph.find(i) for i in range(count)])
        final_labels = root_of[labels]

        discard_key = config.keying_action == KeyingAction.DISCARD
        clusters = []
        output = []
        discarded = np.zeros((height, width), dtype=bool)
        for root in sorted(roots, key=lambda r: (graph.area[r], r)):
            area = int(graph.area[root])
            color = Color(*(int(round(c)) for c in graph.mean_color(root)))
            index = len(clusters)
            clusters.append((root, area, color))

            if skipped[root] or (graph.keyed[root] and discard_key):
                discarded |= final_labels == root
                continue
            if area < config.good_min_area or area > config.good_max_area:
                continue
            output.append(index)

        logger.debug(f"Clustering produced {len(clusters)} clusters, {len(output)} output")
        return ColorClusterView(
            width,
            height,
            labels=final_labels,
            clusters=clusters,
            output=output,
            discarded=discarded,
            fill_holes=config.hollow_neighbours > 0,
        )

    def _merge_same_color(self, graph: _RegionGraph, shift: int, tolerance: int) -> None:
        for root in sorted(graph.roots(), key=lambda r: -graph.area[r]):
            if graph.find(root) != root or graph.keyed[root]:
                continue
            for other in sorted(graph.neighbours[root]):
                if graph.keyed[other] or graph.find(other) != other:
                    continue
                a = graph.mean_color(root).astype(np.int64) >> shift
                b = graph.mean_color(other).astype(np.int64) >> shift
                if np.max(np.abs(a - b)) <= tolerance:
                    root = graph.merge_pair(root, other)

    def _merge_speckles(self, graph: _RegionGraph, min_area: int) -> None:
        for root in sorted(graph.roots(), key=lambda r: (graph.area[r], r)):
            if graph.find(root) != root or graph.keyed[root] or graph.area[root] >= min_area:
                continue
            target, _ = graph.closest_neighbour(root)
            if target is not None:
                graph.union(target, root)

    def _deepen(self, graph: _RegionGraph, deepen_diff: int, max_passes: int) -> None:
        passes = 0
        merged = True
        while merged and passes < max_passes:
            merged = False
            passes += 1
            for root in sorted(graph.roots(), key=lambda r: (graph.area[r], r)):
                if graph.find(root) != root or graph.keyed[root]:
                    continue
                target, distance = graph.closest_neighbour(root)
                if target is not None and distance < deepen_diff:
                    graph.merge_pair(root, target)
                    merged = True

    def cluster_binary(self, mask: np.ndarray, diagonal: bool) -> "list[BinaryCluster]":
        if mask.size == 0:
            return []
        structure = _EIGHT_CONNECTED if diagonal else _FOUR_CONNECTED
        labels, count = ndimage.label(mask, structure=structure)
        if count == 0:
            return []

        areas = np.bincount(labels.ravel(), minlength=count + 1)
        clusters = []
        for i, (rows, cols) in enumerate(ndimage.find_objects(labels), start=1):
            shape = ClusterShape(
                mask=labels[rows, cols] == i,
                offset_x=cols.start,
                offset_y=rows.start,
            )
            clusters.append(BinaryCluster(shape=shape, area=int(areas[i])))
        return clusters
