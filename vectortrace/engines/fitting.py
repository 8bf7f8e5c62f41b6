"""Default curve fitting engine.

Turns a cluster mask into a compound path:
    1. Walk the pixel edges around the mask into closed loops (outer
       boundaries clockwise on screen, holes counter-clockwise)
    2. NONE: keep the staircase corners as straight lines
    3. POLYGON: simplify the staircase with Douglas-Peucker
    4. SPLINE: smooth the polygon and fit Catmull-Rom cubic curves, breaking
       tangents wherever the outline turns sharper than the splice threshold

All coordinates are pixel corners in image space (complex numbers,
real=x, imag=y) so adjacent clusters share their edges exactly.
"""

import cmath
from collections import defaultdict

import cv2
import numpy as np
from svgpathtools import CubicBezier, Line, Path

from vectortrace.models import (
    ClusterShape,
    CompoundPath,
    FitParams,
    PathSimplifyMode,
)

# Douglas-Peucker tolerance in pixels for polygon simplification
POLYGON_TOLERANCE = 1.0


def _boundary_edges(mask: np.ndarray) -> "list[tuple[tuple[int, int], tuple[int, int]]]":
    """Directed unit edges between foreground and background pixels.

    Each edge keeps the foreground pixel on its right (y axis pointing down).
    """
    padded = np.pad(mask.astype(bool), 1)
    core = padded[1:-1, 1:-1]
    edges = []

    ys, xs = np.nonzero(core & ~padded[:-2, 1:-1])  # top
    edges.extend(((x, y), (x + 1, y)) for x, y in zip(xs.tolist(), ys.tolist()))
    ys, xs = np.nonzero(core & ~padded[1:-1, 2:])  # right
    edges.extend(((x + 1, y), (x + 1, y + 1)) for x, y in zip(xs.tolist(), ys.tolist()))
    ys, xs = np.nonzero(core & ~padded[2:, 1:-1])  # bottom
    edges.extend(((x + 1, y + 1), (x, y + 1)) for x, y in zip(xs.tolist(), ys.tolist()))
    ys, xs = np.nonzero(core & ~padded[1:-1, :-2])  # left
    edges.extend(((x, y + 1), (x, y)) for x, y in zip(xs.tolist(), ys.tolist()))
    return edges


def _take_edge(outgoing: dict, corner, direction):
    ends = outgoing[corner]
    index = 0
    if len(ends) > 1 and direction is not None:
        # AIDEV-NOTE: At a corner shared by two diagonal pixels, turning right
        # keeps each pixel inside its own loop.
        right = (-direction[1], direction[0])
        for i, end in enumerate(ends):
            if (end[0] - corner[0], end[1] - corner[1]) == right:
                index = i
                break
    end = ends.pop(index)
    if not ends:
        del outgoing[corner]
    return end


def _signed_area(points: "list[tuple[int, int]]") -> float:
    total = 0.0
    for (x1, y1), (x2, y2) in zip(points, points[1:] + points[:1]):
        total += x1 * y2 - x2 * y1
    return total / 2.0


def trace_loops(mask: np.ndarray) -> "list[list[tuple[int, int]]]":
    """Trace closed pixel-edge loops around the True pixels of a mask.

    Args:
        mask: 2D boolean array

    Returns:
        Loops of corner points with collinear points removed. Outer
        boundaries come first (largest first), followed by holes.
    """
    outgoing = defaultdict(list)
    for start, end in _boundary_edges(mask):
        outgoing[start].append(end)

    loops = []
    while outgoing:
        start = next(iter(outgoing))
        points = [start]
        corner, direction = start, None
        while True:
            end = _take_edge(outgoing, corner, direction)
            direction = (end[0] - corner[0], end[1] - corner[1])
            corner = end
            if corner == start:
                break
            points.append(corner)
        loops.append(_drop_collinear(points))

    areas = [_signed_area(loop) for loop in loops]
    order = sorted(range(len(loops)), key=lambda i: (areas[i] < 0, -abs(areas[i])))
    return [loops[i] for i in order]


def _drop_collinear(points: "list[tuple[int, int]]") -> "list[tuple[int, int]]":
    kept = []
    count = len(points)
    for i, (x, y) in enumerate(points):
        px, py = points[i - 1]
        nx, ny = points[(i + 1) % count]
        if (x - px) * (ny - y) - (y - py) * (nx - x) != 0:
            kept.append((x, y))
    return kept


def simplify_polygon(points: "list[tuple[int, int]]") -> "list[tuple[float, float]]":
    """Douglas-Peucker simplification of a closed staircase."""
    contour = np.array(points, dtype=np.int32).reshape(-1, 1, 2)
    approx = cv2.approxPolyDP(contour, POLYGON_TOLERANCE, True).reshape(-1, 2)
    if len(approx) < 3:
        return [(float(x), float(y)) for x, y in points]
    return [(float(x), float(y)) for x, y in approx]


def turn_angle(prev: complex, point: complex, nxt: complex) -> float:
    """Absolute change of heading at ``point`` in radians (0 to pi)."""
    incoming = point - prev
    outgoing = nxt - point
    if incoming == 0 or outgoing == 0:
        return 0.0
    return abs(cmath.phase(outgoing / incoming))


def _turns(points: "list[complex]") -> "list[float]":
    count = len(points)
    return [
        turn_angle(points[i - 1], points[i], points[(i + 1) % count])
        for i in range(count)
    ]


def smooth_polygon(
    points: "list[complex]",
    corner_threshold: float,
    length_threshold: float,
    max_iterations: int,
) -> "list[complex]":
    """Subdivide long edges with the four-point scheme.

    Edges longer than ``length_threshold`` get a new midpoint each pass;
    next to a corner (turn >= ``corner_threshold``) the plain midpoint is
    used so the corner stays sharp.
    """
    for _ in range(max_iterations):
        count = len(points)
        corners = [angle >= corner_threshold for angle in _turns(points)]
        smoothed = []
        changed = False
        for i in range(count):
            p0 = points[i - 1]
            p1 = points[i]
            p2 = points[(i + 1) % count]
            p3 = points[(i + 2) % count]
            smoothed.append(p1)
            if abs(p2 - p1) > length_threshold:
                if corners[i] or corners[(i + 1) % count]:
                    smoothed.append((p1 + p2) / 2)
                else:
                    smoothed.append((9 * (p1 + p2) - (p0 + p3)) / 16)
                changed = True
        points = smoothed
        if not changed:
            break
    return points


def _spline_segments(points: "list[complex]", splice_threshold: float) -> list:
    count = len(points)
    splice = [angle >= splice_threshold for angle in _turns(points)]

    segments = []
    for i in range(count):
        p0 = points[i - 1]
        p1 = points[i]
        p2 = points[(i + 1) % count]
        p3 = points[(i + 2) % count]
        j = (i + 1) % count
        if splice[i] and splice[j]:
            segments.append(Line(p1, p2))
            continue
        start_tangent = (p2 - p1) if splice[i] else (p2 - p0) / 2
        end_tangent = (p2 - p1) if splice[j] else (p3 - p1) / 2
        segments.append(CubicBezier(p1, p1 + start_tangent / 3, p2 - end_tangent / 3, p2))
    return segments


def _line_segments(points: "list[complex]") -> list:
    count = len(points)
    return [Line(points[i], points[(i + 1) % count]) for i in range(count)]


class CurveFitter:
    """Default FittingEngine implementation."""

    def fit(self, shape: ClusterShape, params: FitParams) -> CompoundPath:
        offset = complex(shape.offset_x, shape.offset_y)
        subpaths = []

        for loop in trace_loops(shape.mask):
            if len(loop) < 3:
                continue

            if params.mode == PathSimplifyMode.NONE:
                corners = [complex(x, y) + offset for x, y in loop]
                segments = _line_segments(corners)
            else:
                polygon = [complex(x, y) + offset for x, y in simplify_polygon(loop)]
                if params.mode == PathSimplifyMode.POLYGON:
                    segments = _line_segments(polygon)
                else:
                    smoothed = smooth_polygon(
                        polygon,
                        params.corner_threshold,
                        params.length_threshold,
                        params.max_iterations,
                    )
                    segments = _spline_segments(smoothed, params.splice_threshold)

            subpaths.append(Path(*segments))

        return CompoundPath(subpaths=subpaths)
