"""SVG serialization of traced path collections."""

from typing import TYPE_CHECKING

import svg
from svgpathtools import CubicBezier

if TYPE_CHECKING:
    from vectortrace.models import CompoundPath, PathCollection


def _round(value: float, precision: int) -> float | int:
    if precision <= 0:
        return int(round(value))
    return round(value, precision)


def compound_path_data(path: "CompoundPath", precision: int) -> "list[svg.PathData]":
    """Convert a compound path into absolute SVG path commands.

    Args:
        path: Fitted compound path (complex coordinates)
        precision: Number of decimal places kept in coordinates

    Returns:
        List of svg.py path commands, one closed run per sub-path
    """
    commands: list[svg.PathData] = []

    def xy(point: complex):
        return _round(point.real, precision), _round(point.imag, precision)

    for subpath in path.subpaths:
        if len(subpath) == 0:
            continue
        start = subpath[0].start
        commands.append(svg.MoveTo(*xy(start)))
        last = len(subpath) - 1
        for i, segment in enumerate(subpath):
            if isinstance(segment, CubicBezier):
                commands.append(
                    svg.CubicBezier(*xy(segment.control1), *xy(segment.control2), *xy(segment.end))
                )
            elif i < last or segment.end != start:
                # The closing line back to the start is implied by Z
                commands.append(svg.LineTo(*xy(segment.end)))
        commands.append(svg.ClosePath())

    return commands


def path_collection_to_svg(collection: "PathCollection") -> str:
    """Convert a path collection to an SVG document string.

    AIDEV-NOTE: Elements keep collection order, which is paint order.
    Empty compound paths are skipped.
    """
    elements: list[svg.Element] = []
    for traced in collection.paths:
        data = compound_path_data(traced.path, collection.path_precision)
        if not data:
            continue
        elements.append(svg.Path(d=data, fill=traced.color.to_hex()))

    document = svg.SVG(
        width=collection.width,
        height=collection.height,
        viewBox=svg.ViewBoxSpec(0, 0, collection.width, collection.height),
        elements=elements,
    )
    return document.as_str()
