"""Tests for the default clustering engine."""

import numpy as np
import pytest

from conftest import make_buffer
from vectortrace.engines.color_clusters import ColorClusterEngine, label_equal_regions
from vectortrace.models import (
    HIERARCHICAL_MAX,
    Color,
    KeyingAction,
    PixelBuffer,
    RunnerConfig,
)
from vectortrace.tracing.keying import apply_key_color

RED = Color(255, 0, 0)
BLUE = Color(0, 0, 255)


def runner_config(**overrides) -> RunnerConfig:
    values = dict(
        diagonal=False,
        hierarchical=HIERARCHICAL_MAX,
        batch_size=25600,
        good_min_area=16,
        good_max_area=400,
        is_same_color_a=2,
        is_same_color_b=1,
        deepen_diff=16,
        hollow_neighbours=1,
        key_color=None,
        keying_action=KeyingAction.DISCARD,
    )
    values.update(overrides)
    return RunnerConfig(**values)


@pytest.fixture
def keyed_blue_square():
    """Transparent 20x20 image, keyed red, with an opaque blue 8x8 square."""
    image = PixelBuffer.blank(20, 20)
    image.pixels[6:14, 6:14] = (0, 0, 255, 255)
    apply_key_color(image, RED)
    return image


def test_label_equal_regions():
    values = np.array([[1, 1, 2], [3, 1, 2], [3, 3, 1]])

    labels, count = label_equal_regions(values, diagonal=False)

    assert count == 4
    assert labels[0, 0] == labels[1, 1]
    assert labels[2, 2] != labels[1, 1]


def test_label_equal_regions_diagonal():
    values = np.array([[1, 1, 2], [3, 1, 2], [3, 3, 1]])

    _, count = label_equal_regions(values, diagonal=True)

    assert count == 3


class TestColorClustering:
    def test_square_gives_two_clusters_smallest_first(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config())

        assert view.clusters_output == [0, 1]
        first = view.get_cluster(0)
        second = view.get_cluster(1)
        assert first.area == 100
        assert first.residue_color == Color(0, 0, 0)
        assert second.area == 300
        assert second.residue_color == Color(255, 255, 255)

    def test_cluster_shape_is_cropped(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config())

        shape = view.get_cluster(0).shape
        assert (shape.offset_x, shape.offset_y) == (5, 5)
        assert shape.mask.shape == (10, 10)
        assert shape.mask.all()

    def test_holes_filled_with_hollow_neighbours(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config(hollow_neighbours=1))

        assert view.get_cluster(1).shape.mask.sum() == 400

    def test_holes_kept_without_hollow_neighbours(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config(hollow_neighbours=0))

        mask = view.get_cluster(1).shape.mask
        assert mask.sum() == 300
        assert not mask[5:15, 5:15].any()

    def test_to_color_image_reproduces_flat_image(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config())

        flattened = view.to_color_image()

        assert np.array_equal(flattened.pixels, square_image.pixels)

    def test_speckle_merges_into_neighbour(self, white_image):
        white_image.pixels[10, 10] = (0, 0, 0, 255)

        view = ColorClusterEngine().cluster(white_image, runner_config())

        assert len(view.clusters_output) == 1
        assert view.get_cluster(view.clusters_output[0]).area == 400

    def test_similar_colors_merge(self, white_image):
        white_image.pixels[:, :10] = (200, 200, 200, 255)
        white_image.pixels[:, 10:] = (201, 201, 201, 255)

        view = ColorClusterEngine().cluster(white_image, runner_config())

        assert len(view.clusters_output) == 1

    def test_gradient_layers_merge_below_layer_difference(self, white_image):
        white_image.pixels[:, :10] = (100, 100, 100, 255)
        white_image.pixels[:, 10:] = (110, 110, 110, 255)

        merged = ColorClusterEngine().cluster(white_image, runner_config(deepen_diff=16))
        separate = ColorClusterEngine().cluster(white_image, runner_config(deepen_diff=4))

        assert len(merged.clusters_output) == 1
        assert len(separate.clusters_output) == 2

    def test_key_region_discarded(self, keyed_blue_square):
        view = ColorClusterEngine().cluster(
            keyed_blue_square, runner_config(key_color=RED, keying_action=KeyingAction.DISCARD)
        )

        assert len(view.clusters_output) == 1
        cluster = view.get_cluster(view.clusters_output[0])
        assert cluster.residue_color == BLUE
        assert cluster.area == 64

    def test_key_region_kept(self, keyed_blue_square):
        view = ColorClusterEngine().cluster(
            keyed_blue_square, runner_config(key_color=RED, keying_action=KeyingAction.KEEP)
        )

        colors = [view.get_cluster(i).residue_color for i in view.clusters_output]
        assert colors == [BLUE, RED]

    def test_key_region_never_absorbs_speckles(self, keyed_blue_square):
        keyed_blue_square.pixels[0, 0] = (0, 0, 250, 255)

        view = ColorClusterEngine().cluster(
            keyed_blue_square, runner_config(key_color=RED, keying_action=KeyingAction.KEEP)
        )

        # The stray pixel only touches the key region, so it stays on its own
        assert len(view) == 3
        assert [view.get_cluster(i).area for i in view.clusters_output] == [64, 335]

    def test_key_hole_not_filled(self):
        image = make_buffer(20, 20, rgba=(0, 0, 255, 255))
        image.pixels[6:14, 6:14] = (0, 0, 0, 0)
        apply_key_color(image, RED)

        view = ColorClusterEngine().cluster(
            image, runner_config(key_color=RED, keying_action=KeyingAction.DISCARD)
        )

        cluster = view.get_cluster(view.clusters_output[0])
        assert cluster.residue_color == BLUE
        assert cluster.shape.mask.sum() == 400 - 64

    def test_unpainted_pixels_skipped(self, square_image):
        # Black square left unpainted by an earlier pass
        square_image.pixels[5:15, 5:15] = (0, 0, 0, 0)

        view = ColorClusterEngine().cluster(
            square_image, runner_config(good_min_area=0, skip_transparent=True)
        )

        colors = [view.get_cluster(i).residue_color for i in view.clusters_output]
        assert colors == [Color(255, 255, 255)]

    def test_transparent_pixels_clustered_by_default(self, square_image):
        square_image.pixels[5:15, 5:15] = (0, 0, 0, 0)

        view = ColorClusterEngine().cluster(square_image, runner_config(good_min_area=0))

        assert len(view.clusters_output) == 2

    def test_area_bounds(self, square_image):
        view = ColorClusterEngine().cluster(square_image, runner_config(good_max_area=200))

        assert view.clusters_output == [0]

    def test_empty_image(self):
        view = ColorClusterEngine().cluster(PixelBuffer.blank(0, 0), runner_config())

        assert view.clusters_output == []
        assert view.to_color_image().area == 0


class TestBinaryClustering:
    def test_raster_order(self):
        mask = np.zeros((10, 10), dtype=bool)
        mask[6:9, 1:3] = True
        mask[1:3, 5:9] = True

        clusters = ColorClusterEngine().cluster_binary(mask, False)

        assert [c.area for c in clusters] == [8, 6]
        assert (clusters[0].shape.offset_x, clusters[0].shape.offset_y) == (5, 1)
        assert (clusters[1].shape.offset_x, clusters[1].shape.offset_y) == (1, 6)

    def test_diagonal_connectivity(self):
        mask = np.eye(3, dtype=bool)

        assert len(ColorClusterEngine().cluster_binary(mask, False)) == 3
        assert len(ColorClusterEngine().cluster_binary(mask, True)) == 1

    @pytest.mark.parametrize("shape", [(0, 0), (5, 5)])
    def test_empty(self, shape):
        assert ColorClusterEngine().cluster_binary(np.zeros(shape, dtype=bool), False) == []
