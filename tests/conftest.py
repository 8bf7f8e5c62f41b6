"""Shared fixtures: synthetic images and stub engines."""

import io
from dataclasses import dataclass

import numpy as np
import pytest
from PIL import Image

from vectortrace.models import ClusterShape, Color, CompoundPath, PixelBuffer


def make_buffer(width: int, height: int, rgba=(255, 255, 255, 255)) -> PixelBuffer:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return PixelBuffer(pixels, width, height)


def encode_png(buffer: PixelBuffer) -> bytes:
    out = io.BytesIO()
    Image.fromarray(buffer.pixels).save(out, format="PNG")
    return out.getvalue()


@dataclass
class StubCluster:
    shape: ClusterShape
    area: int
    residue_color: Color


class StubView:
    def __init__(self, width, height, clusters):
        self.width = width
        self.height = height
        self._clusters = list(clusters)

    @property
    def clusters_output(self):
        return list(range(len(self._clusters)))

    def get_cluster(self, index):
        return self._clusters[index]

    def to_color_image(self):
        return PixelBuffer.blank(self.width, self.height)


class StubClusteringEngine:
    """Records its inputs and returns canned clusters."""

    def __init__(self, clusters=(), binary_clusters=()):
        self.clusters = list(clusters)
        self.binary_clusters = list(binary_clusters)
        self.calls = []
        self.binary_calls = []

    def cluster(self, image, config):
        self.calls.append((image.pixels.copy(), config))
        return StubView(image.width, image.height, self.clusters)

    def cluster_binary(self, mask, diagonal):
        self.binary_calls.append((mask.copy(), diagonal))
        return list(self.binary_clusters)


class StubFitter:
    """Returns an empty compound path and remembers what it was asked."""

    def __init__(self):
        self.fitted = []

    def fit(self, shape, params):
        self.fitted.append((shape, params))
        return CompoundPath()


def stub_cluster(x: int, color: Color, area: int = 100) -> StubCluster:
    shape = ClusterShape(mask=np.ones((2, 2), dtype=bool), offset_x=x, offset_y=0)
    return StubCluster(shape=shape, area=area, residue_color=color)


@pytest.fixture
def white_image():
    return make_buffer(20, 20)


@pytest.fixture
def square_image():
    """20x20 white image with a black 10x10 square at (5, 5)."""
    image = make_buffer(20, 20)
    image.pixels[5:15, 5:15] = (0, 0, 0, 255)
    return image


@pytest.fixture
def square_png(square_image):
    return encode_png(square_image)
