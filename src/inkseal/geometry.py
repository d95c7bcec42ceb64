"""Stroke simplification for captured signatures.

Pointer devices sample far more densely than a signature needs. The
Ramer-Douglas-Peucker algorithm drops points that lie within a tolerance
of the chord between their neighbours, keeping the visual shape while
shrinking the stored artifact.

Works on anything point-like: ``Point`` models, ``{"x": .., "y": ..}``
mappings or ``(x, y)`` pairs. The output always contains the caller's
original objects, in their original order.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

logger = logging.getLogger("inkseal.geometry")

DEFAULT_TOLERANCE = 0.001

P = TypeVar("P")


def coords(point: Any) -> tuple[float, float]:
    """Return ``(x, y)`` for a point-like value."""
    if isinstance(point, Mapping):
        return float(point["x"]), float(point["y"])
    if isinstance(point, Sequence) and not isinstance(point, str):
        return float(point[0]), float(point[1])
    return float(point.x), float(point.y)


def perpendicular_distance(point: Any, start: Any, end: Any) -> float:
    """Distance from ``point`` to the segment ``start``..``end``.

    The projection is clamped to the segment, so points beyond either
    end are measured to that endpoint. A zero-length segment degrades
    to plain point-to-point distance.
    """
    px, py = coords(point)
    sx, sy = coords(start)
    ex, ey = coords(end)

    dx = ex - sx
    dy = ey - sy
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return math.sqrt((px - sx) ** 2 + (py - sy) ** 2)

    t = max(0.0, min(1.0, ((px - sx) * dx + (py - sy) * dy) / length_sq))
    proj_x = sx + t * dx
    proj_y = sy + t * dy
    return math.sqrt((px - proj_x) ** 2 + (py - proj_y) ** 2)


def simplify(points: Sequence[P], tolerance: float = DEFAULT_TOLERANCE) -> list[P]:
    """Simplify a stroke with Ramer-Douglas-Peucker.

    Args:
        points: Stroke in normalized space.
        tolerance: Maximum allowed deviation, in normalized units.

    Returns:
        A subsequence of ``points`` that keeps the first and last point.
        Strokes of two points or fewer are returned as-is.

    Raises:
        ValueError: If ``tolerance`` is negative or NaN.
    """
    if not tolerance >= 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance!r}")

    n = len(points)
    if n <= 2:
        return list(points)

    # Split spans are walked with an explicit stack; a 1000-point stroke
    # can otherwise recurse deeper than the interpreter allows.
    keep = [False] * n
    keep[0] = keep[-1] = True
    spans = [(0, n - 1)]

    while spans:
        first, last = spans.pop()
        max_dist = 0.0
        max_index = first

        for i in range(first + 1, last):
            dist = perpendicular_distance(points[i], points[first], points[last])
            if dist > max_dist:
                max_dist = dist
                max_index = i

        if max_dist > tolerance:
            keep[max_index] = True
            spans.append((first, max_index))
            spans.append((max_index, last))

    return [p for p, kept in zip(points, keep) if kept]


def simplify_strokes(
    strokes: Sequence[Sequence[P]],
    tolerance: float = DEFAULT_TOLERANCE,
) -> list[list[P]]:
    """Simplify every stroke of a signature independently."""
    simplified = [simplify(stroke, tolerance) for stroke in strokes]
    logger.debug(
        "Simplified %d strokes: %d -> %d points",
        len(strokes),
        sum(len(s) for s in strokes),
        sum(len(s) for s in simplified),
    )
    return simplified
