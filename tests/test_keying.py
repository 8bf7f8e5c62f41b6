"""Unit tests for transparency keying.

Tests:
    - Keying detector on empty, sparse and dense transparency
    - Threshold boundary and row sampling
    - Key color candidate order and exhaustion
    - In-place key color application
"""

import numpy as np
import pytest

from conftest import make_buffer
from vectortrace.errors import KeyColorError
from vectortrace.models import Color, PixelBuffer
from vectortrace.tracing.keying import (
    KEY_COLOR_CANDIDATES,
    apply_key_color,
    find_unused_color,
    sampled_rows,
    should_key_image,
)


@pytest.mark.parametrize("width,height", [(0, 0), (0, 10), (10, 0)])
def test_empty_image_never_keyed(width, height):
    assert should_key_image(PixelBuffer.blank(width, height)) is False


def test_sampled_rows():
    assert sampled_rows(10) == [0, 2, 5, 7, 9]
    assert sampled_rows(1) == [0, 0, 0, 0, 0]


def test_keying_triggers_at_threshold():
    # Width 10 -> threshold floor(2 * 10 * 0.2) = 4
    image = make_buffer(10, 10)
    image.pixels[0, :4, 3] = 0
    assert should_key_image(image) is True


def test_keying_not_triggered_one_below_threshold():
    image = make_buffer(10, 10)
    image.pixels[0, :3, 3] = 0
    assert should_key_image(image) is False


def test_keying_counts_across_sampled_rows():
    image = make_buffer(10, 10)
    image.pixels[0, 0, 3] = 0
    image.pixels[2, 0, 3] = 0
    image.pixels[5, 0, 3] = 0
    image.pixels[9, 9, 3] = 0
    assert should_key_image(image) is True


def test_keying_ignores_unsampled_rows():
    image = make_buffer(10, 10)
    image.pixels[1, :, 3] = 0
    image.pixels[3, :, 3] = 0
    assert should_key_image(image) is False


def test_partial_alpha_is_not_transparent():
    image = make_buffer(10, 10, rgba=(0, 0, 0, 1))
    assert should_key_image(image) is False


def test_first_candidate_when_image_has_no_candidates():
    image = make_buffer(5, 5, rgba=(10, 20, 30, 255))
    assert find_unused_color(image) == Color(255, 0, 0)


def test_candidate_order_skips_used_colors():
    image = make_buffer(3, 1)
    image.pixels[0, 0] = (255, 0, 0, 255)
    image.pixels[0, 1] = (0, 255, 0, 255)
    image.pixels[0, 2] = (9, 9, 9, 255)
    assert find_unused_color(image) == Color(0, 0, 255)


def test_candidate_check_ignores_alpha():
    # A fully transparent red pixel still occupies red
    image = make_buffer(2, 1)
    image.pixels[0, 0] = (255, 0, 0, 0)
    assert find_unused_color(image) == Color(0, 255, 0)


def test_all_candidates_used_raises():
    image = make_buffer(len(KEY_COLOR_CANDIDATES), 1)
    for x, color in enumerate(KEY_COLOR_CANDIDATES):
        image.pixels[0, x] = (*color.as_tuple(), 255)

    with pytest.raises(KeyColorError, match="unable to find unused color"):
        find_unused_color(image)


def test_apply_key_color_replaces_only_transparent_rgb():
    image = make_buffer(4, 4, rgba=(10, 10, 10, 255))
    image.pixels[0, :2] = (7, 8, 9, 0)

    replaced = apply_key_color(image, Color(255, 0, 0))

    assert replaced == 2
    assert np.array_equal(image.pixels[0, 0], [255, 0, 0, 0])
    assert np.array_equal(image.pixels[0, 2], [10, 10, 10, 255])


def test_fully_transparent_image_is_keyed_red():
    image = PixelBuffer.blank(10, 10)

    assert should_key_image(image) is True
    key = find_unused_color(image)
    assert key == Color(255, 0, 0)

    apply_key_color(image, key)
    assert np.all(image.pixels[..., :3] == (255, 0, 0))
