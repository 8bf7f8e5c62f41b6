"""Data models and constants for the raster tracing pipeline."""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

# AIDEV-NOTE: Clustering constants shared with the engines - keep in sync
HIERARCHICAL_MAX = 2**31 - 1  # "unbounded" hierarchy depth
CUTOUT_HIERARCHY_DEPTH = 64
CLUSTER_BATCH_SIZE = 25600
MAX_FIT_ITERATIONS = 10

# Fraction of 2x image width that must be transparent to trigger keying
KEYING_THRESHOLD = 0.2

# Configuration file path
CONFIG_FILE = Path.home() / ".vectortrace_config.json"


class ColorMode(Enum):
    """Which pipeline converts the image."""

    COLOR = "color"
    BINARY = "binary"


class PathSimplifyMode(Enum):
    """Curve fitting modes.

    AIDEV-NOTE: NONE emits the raw pixel staircase, POLYGON straight
    segments, SPLINE smoothed cubic curves.
    """

    NONE = "none"
    POLYGON = "polygon"
    SPLINE = "spline"


class Hierarchical(Enum):
    """How nested color regions are layered in the output."""

    STACKED = "stacked"  # Nested filled shapes, painter's algorithm
    CUTOUT = "cutout"  # Holes become independent shapes


class KeyingAction(Enum):
    """What the clustering engine does with key-colored regions."""

    KEEP = "keep"
    DISCARD = "discard"


@dataclass(frozen=True)
class Color:
    """An opaque RGB color (0-255 per channel)."""

    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def as_tuple(self) -> "tuple[int, int, int]":
        return (self.r, self.g, self.b)


BLACK = Color(0, 0, 0)


@dataclass
class PixelBuffer:
    """Width/height tagged RGBA8 pixel storage.

    AIDEV-NOTE: ``pixels`` is a (height, width, 4) uint8 array, i.e. the
    flat RGBA quadruple sequence reshaped row-major. Keying writes into it
    in place, so a buffer must only ever be held by one pipeline stage.
    """

    pixels: np.ndarray
    width: int
    height: int

    def __post_init__(self):
        if self.pixels.size != self.width * self.height * 4:
            raise ValueError(
                f"Pixel data has {self.pixels.size} bytes, expected "
                f"{self.width * self.height * 4} for a "
                f"{self.width}x{self.height} RGBA image"
            )
        self.pixels = self.pixels.reshape(self.height, self.width, 4)

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Create a fully transparent black buffer."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8), width, height)

    @property
    def area(self) -> int:
        return self.width * self.height

    def get_pixel(self, x: int, y: int) -> "tuple[int, int, int, int]":
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))


@dataclass
class TraceOptions:
    """Caller supplied overrides; ``None`` means "use the preset/default".

    Field names follow the public tracing options: ``gradient_step`` is the
    layer difference and ``segment_length`` the length threshold.
    """

    colormode: str | None = None  # "color", "bw" or "binary"
    filter_speckle: int | None = None  # Discard patches smaller than X px
    color_precision: int | None = None  # Significant bits per channel (1-8)
    gradient_step: int | None = None  # Color difference between layers
    corner_threshold: int | None = None  # Degrees
    segment_length: float | None = None
    splice_threshold: int | None = None  # Degrees
    mode: str | None = None  # "pixel"/"none", "polygon" or "spline"
    hierarchical: str | None = None  # "stacked" or "cutout"
    path_precision: int | None = None  # Decimal places in path data
    preset: str | None = None  # "bw", "poster" or "photo"


@dataclass(frozen=True)
class TracingConfig:
    """Fully resolved tracing configuration.

    AIDEV-NOTE: Angle thresholds are stored in degrees as supplied; the
    pipeline only ever reads the *_rad properties.
    """

    color_mode: ColorMode = ColorMode.COLOR
    hierarchical: Hierarchical = Hierarchical.STACKED
    filter_speckle: int = 4
    color_precision: int = 6
    layer_difference: int = 16
    mode: PathSimplifyMode = PathSimplifyMode.SPLINE
    corner_threshold: int = 60
    length_threshold: float = 4.0
    max_iterations: int = MAX_FIT_ITERATIONS
    splice_threshold: int = 45
    path_precision: int = 2

    @property
    def filter_speckle_area(self) -> int:
        return self.filter_speckle * self.filter_speckle

    @property
    def color_precision_loss(self) -> int:
        return 8 - self.color_precision

    @property
    def corner_threshold_rad(self) -> float:
        return math.radians(self.corner_threshold)

    @property
    def splice_threshold_rad(self) -> float:
        return math.radians(self.splice_threshold)


@dataclass(frozen=True)
class RunnerConfig:
    """Parameters for one pass of the clustering engine."""

    diagonal: bool
    hierarchical: int
    batch_size: int
    good_min_area: int
    good_max_area: int
    is_same_color_a: int
    is_same_color_b: int
    deepen_diff: int
    hollow_neighbours: int
    key_color: Color | None
    keying_action: KeyingAction
    # Fully transparent pixels are left out of every cluster
    skip_transparent: bool = False


@dataclass(frozen=True)
class FitParams:
    """Parameters for the curve fitting engine (angles in radians)."""

    mode: PathSimplifyMode
    corner_threshold: float
    length_threshold: float
    max_iterations: int
    splice_threshold: float


@dataclass
class ClusterShape:
    """Boolean mask of a cluster, cropped to its bounding box.

    ``offset_x``/``offset_y`` place the mask's top-left pixel in image space.
    """

    mask: np.ndarray
    offset_x: int = 0
    offset_y: int = 0


# --- Output Models ---


@dataclass
class CompoundPath:
    """A fitted outline: one closed svgpathtools ``Path`` per boundary.

    The first sub-path is normally the outer boundary, the rest are holes.
    Coordinates are complex numbers (real=x, imag=y) in image pixels.
    """

    subpaths: list = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.subpaths)

    def is_empty(self) -> bool:
        return not self.subpaths


@dataclass
class TracedPath:
    """A compound path with its fill color."""

    path: CompoundPath
    color: Color


@dataclass
class PathCollection:
    """Result of the tracing pipeline.

    AIDEV-NOTE: Paths are stored in paint order - the first path is drawn
    first (bottom-most) when serialized to SVG.
    """

    width: int
    height: int
    path_precision: int = 2
    paths: "list[TracedPath]" = field(default_factory=list)

    def add_path(self, path: CompoundPath, color: Color) -> None:
        self.paths.append(TracedPath(path=path, color=color))

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self):
        return iter(self.paths)

    def to_svg(self) -> str:
        """Serialize to an SVG document string."""
        from vectortrace.tracing.svg_writer import path_collection_to_svg

        return path_collection_to_svg(self)
