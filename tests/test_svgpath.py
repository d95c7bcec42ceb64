"""Tests for SVG path synthesis."""

import pytest

from inkseal.models import Point
from inkseal.svgpath import (
    VIEWBOX_HEIGHT,
    VIEWBOX_WIDTH,
    format_coord,
    render_svg,
    stroke_commands,
    synthesize,
)


def _pts(*pairs):
    return [Point(x=x, y=y) for x, y in pairs]


class TestFormatCoord:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "0.0"),
            (600, "600.0"),
            (123.456, "123.5"),
            (0.25, "0.3"),    # exact tie rounds away from zero
            (1.25, "1.3"),
            (0.35, "0.3"),    # binary value is just below the tie
            (0.05, "0.1"),
            (-0.0, "0.0"),
            (-1.25, "-1.3"),
        ],
    )
    def test_one_fractional_digit(self, value, expected):
        assert format_coord(value) == expected


class TestSynthesize:

    def test_viewport(self):
        assert (VIEWBOX_WIDTH, VIEWBOX_HEIGHT) == (600, 200)

    def test_two_points_is_a_line(self):
        path = synthesize([_pts((0, 0), (1, 1))])
        assert path == "M 0.0 0.0 L 600.0 200.0"

    def test_three_points_curve_through_midpoint(self):
        path = synthesize([_pts((0, 0), (0.5, 0.5), (1, 1))])
        assert path == (
            "M 0.0 0.0 "
            "Q 300.0 100.0 450.0 150.0 "
            "Q 300.0 100.0 600.0 200.0"
        )

    def test_interior_points_are_control_points(self):
        path = synthesize([_pts((0, 0), (0.1, 0.5), (0.2, 0), (0.3, 0.5))])
        assert path == (
            "M 0.0 0.0 "
            "Q 60.0 100.0 90.0 50.0 "
            "Q 120.0 0.0 150.0 50.0 "
            "Q 120.0 0.0 180.0 100.0"
        )

    def test_strokes_concatenate_in_order(self):
        first = _pts((0, 0), (1, 1))
        second = _pts((0, 1), (1, 0))
        assert synthesize([first, second]) == (
            "M 0.0 0.0 L 600.0 200.0 M 0.0 200.0 L 600.0 0.0"
        )
        assert synthesize([second, first]) != synthesize([first, second])

    def test_degenerate_stroke_contributes_nothing(self):
        assert stroke_commands(_pts((0.5, 0.5))) == []
        assert stroke_commands([]) == []
        path = synthesize([_pts((0.5, 0.5)), _pts((0, 0), (1, 1)), []])
        assert path == "M 0.0 0.0 L 600.0 200.0"

    def test_all_degenerate_is_empty(self):
        assert synthesize([_pts((0.2, 0.2)), _pts((0.3, 0.3))]) == ""
        assert synthesize([]) == ""

    def test_accepts_mappings(self):
        stroke = [{"x": 0, "y": 0}, {"x": 1, "y": 1}]
        assert synthesize([stroke]) == "M 0.0 0.0 L 600.0 200.0"

    def test_deterministic(self, signature_data):
        strokes = signature_data["strokes"]
        assert synthesize(strokes) == synthesize(strokes)


class TestRenderSvg:

    def test_wraps_path_in_canonical_viewbox(self):
        svg = render_svg("M 0.0 0.0 L 600.0 200.0", "Ada")
        assert svg.startswith("<svg")
        assert 'viewBox="0 0 600 200"' in svg
        assert 'd="M 0.0 0.0 L 600.0 200.0"' in svg
        assert "Signature of Ada" in svg

    def test_escapes_signer_name(self):
        svg = render_svg("", 'Smith & "Sons" <Ltd>')
        assert "&amp;" in svg
        assert "<Ltd>" not in svg
