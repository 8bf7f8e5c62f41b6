"""Transparency keying.

Clustering only looks at RGB, so before it runs, transparent pixels are
painted with a color that appears nowhere else in the image. The clustering
engine can then keep or discard that "key" region as a unit.
"""

import logging

import numpy as np

from vectortrace.errors import KeyColorError
from vectortrace.models import KEYING_THRESHOLD, Color, PixelBuffer

logger = logging.getLogger(__name__)

KEY_COLOR_CANDIDATES = (
    Color(255, 0, 0),
    Color(0, 255, 0),
    Color(0, 0, 255),
    Color(255, 255, 0),
    Color(0, 255, 255),
    Color(255, 0, 255),
    Color(1, 1, 1),
    Color(2, 2, 2),
    Color(254, 254, 254),
    Color(128, 0, 128),
    Color(0, 128, 128),
    Color(128, 128, 0),
)


def sampled_rows(height: int) -> "list[int]":
    """Rows scanned by the keying detector: top, quarters and bottom."""
    return [0, height // 4, height // 2, 3 * height // 4, height - 1]


def should_key_image(image: PixelBuffer) -> bool:
    """Decide whether enough pixels are transparent to need keying.

    Args:
        image: RGBA pixel buffer

    Returns:
        True once the number of fully transparent pixels seen in the five
        sampled rows reaches 20% of twice the image width

    AIDEV-NOTE: Only five rows are scanned to keep this O(width). The
    ``2 * width`` base (not ``5 * width``) is a tuning constant.
    """
    if image.width == 0 or image.height == 0:
        return False

    threshold = int(image.width * 2 * KEYING_THRESHOLD)
    transparent = 0
    for y in sampled_rows(image.height):
        for x in range(image.width):
            if image.pixels[y, x, 3] == 0:
                transparent += 1
            if transparent >= threshold:
                return True
    return False


def color_exists_in_image(image: PixelBuffer, color: Color) -> bool:
    """Check every pixel's RGB (alpha ignored) against ``color``."""
    if image.area == 0:
        return False
    matches = np.all(image.pixels[..., :3] == np.array(color.as_tuple(), dtype=np.uint8), axis=-1)
    return bool(matches.any())


def find_unused_color(image: PixelBuffer) -> Color:
    """Return the first key color candidate not present in the image.

    Raises:
        KeyColorError: If every candidate already appears in the image
    """
    for color in KEY_COLOR_CANDIDATES:
        if not color_exists_in_image(image, color):
            return color
    raise KeyColorError("unable to find unused color in image to use as key")


def apply_key_color(image: PixelBuffer, key_color: Color) -> int:
    """Overwrite the RGB of every fully transparent pixel, in place.

    Returns:
        Number of pixels replaced
    """
    transparent = image.pixels[..., 3] == 0
    image.pixels[transparent, :3] = key_color.as_tuple()
    return int(transparent.sum())
