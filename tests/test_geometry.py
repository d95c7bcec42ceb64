"""Tests for Douglas-Peucker stroke simplification."""

import math

import pytest

from inkseal.geometry import perpendicular_distance, simplify, simplify_strokes
from inkseal.models import Point


def _is_subsequence(sub, seq) -> bool:
    it = iter(seq)
    return all(any(s is item for item in it) for s in sub)


def _wave(n: int = 200) -> list[Point]:
    return [
        Point(x=i / (n - 1), y=0.5 + 0.4 * math.sin(i / (n - 1) * 4 * math.pi))
        for i in range(n)
    ]


class TestPerpendicularDistance:

    def test_distance_to_horizontal_segment(self):
        assert perpendicular_distance((0.5, 0.5), (0.0, 0.0), (1.0, 0.0)) == pytest.approx(0.5)

    def test_zero_length_chord_uses_point_distance(self):
        d = perpendicular_distance((0.3, 0.4), (0.0, 0.0), (0.0, 0.0))
        assert d == pytest.approx(0.5)

    def test_projection_clamped_to_segment(self):
        # Beyond the end point: measured to the end point, not the line.
        d = perpendicular_distance((0.9, 0.0), (0.0, 0.0), (0.5, 0.0))
        assert d == pytest.approx(0.4)

    def test_accepts_models_and_mappings(self):
        d = perpendicular_distance(
            Point(x=0.5, y=0.5), {"x": 0.0, "y": 0.0}, Point(x=1.0, y=0.0)
        )
        assert d == pytest.approx(0.5)


class TestSimplify:

    def test_short_strokes_unchanged(self):
        one = [Point(x=0.1, y=0.1)]
        two = [Point(x=0.1, y=0.1), Point(x=0.9, y=0.9)]
        assert simplify(one) == one
        assert simplify(two) == two
        assert simplify([]) == []

    @pytest.mark.parametrize("tolerance", [1e-9, 0.001, 0.5])
    def test_straight_stroke_collapses_to_endpoints(self, tolerance):
        stroke = [Point(x=i / 99, y=0.5 * i / 99) for i in range(100)]
        result = simplify(stroke, tolerance)
        assert result == [stroke[0], stroke[-1]]

    def test_subsequence_keeps_endpoints(self):
        stroke = _wave()
        result = simplify(stroke, 0.01)
        assert result[0] is stroke[0]
        assert result[-1] is stroke[-1]
        assert len(result) <= len(stroke)
        assert _is_subsequence(result, stroke)

    def test_idempotent(self):
        stroke = _wave()
        once = simplify(stroke, 0.005)
        assert simplify(once, 0.005) == once

    def test_larger_tolerance_keeps_fewer_points(self):
        stroke = _wave()
        assert len(simplify(stroke, 0.05)) < len(simplify(stroke, 0.001))

    def test_corner_is_kept(self):
        stroke = [(0.0, 0.0), (0.25, 0.0), (0.5, 0.0), (0.5, 0.25), (0.5, 0.5)]
        assert simplify(stroke, 0.001) == [(0.0, 0.0), (0.5, 0.0), (0.5, 0.5)]

    def test_closed_loop_uses_point_distance(self):
        stroke = [(0.5, 0.5), (0.6, 0.5), (0.5, 0.5)]
        assert simplify(stroke, 0.001) == stroke

    def test_backtracking_point_kept(self):
        stroke = [(0.0, 0.0), (0.9, 0.0), (0.5, 0.0)]
        assert simplify(stroke, 0.001) == stroke

    def test_deterministic(self):
        stroke = _wave()
        assert simplify(stroke, 0.002) == simplify(stroke, 0.002)

    def test_max_length_stroke(self):
        # Steep curve: splits are lopsided, so the walk goes deep.
        stroke = [Point(x=i / 999, y=(i / 999) ** 12) for i in range(1000)]
        result = simplify(stroke, 0.0)
        assert result[0] is stroke[0]
        assert result[-1] is stroke[-1]
        assert _is_subsequence(result, stroke)

    def test_zero_tolerance_drops_collinear_points(self):
        stroke = [(0.0, 0.0), (0.5, 0.0), (1.0, 0.0)]
        assert simplify(stroke, 0.0) == [stroke[0], stroke[2]]

    @pytest.mark.parametrize("tolerance", [-0.001, -1.0, float("nan")])
    def test_rejects_invalid_tolerance(self, tolerance):
        with pytest.raises(ValueError, match="tolerance"):
            simplify([(0.0, 0.0), (0.5, 0.0), (1.0, 0.0)], tolerance)


class TestSimplifyStrokes:

    def test_each_stroke_independent(self):
        straight = [(0.0, 0.0), (0.5, 0.5), (1.0, 1.0)]
        corner = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]
        assert simplify_strokes([straight, corner]) == [
            [(0.0, 0.0), (1.0, 1.0)],
            corner,
        ]
