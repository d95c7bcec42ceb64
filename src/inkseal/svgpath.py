"""Deterministic SVG path synthesis for captured signatures.

Normalized strokes are scaled into a fixed 600x200 viewport and turned
into an SVG path ``d`` string with quadratic Bezier smoothing: each
interior sample becomes a control point and the curve runs through the
midpoints between samples. The string is persisted as the legal record
of what was signed, so identical input must always produce a
byte-identical string on every platform.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from xml.sax.saxutils import escape, quoteattr

from .geometry import coords

VIEWBOX_WIDTH = 600
VIEWBOX_HEIGHT = 200

INK_COLOR = "#1a1a2e"
LINE_WIDTH = 2.5

_ONE_PLACE = Decimal("0.1")


def format_coord(value: float) -> str:
    """Format a coordinate with exactly one fractional digit.

    Rounds the exact binary value half away from zero, which is what
    JavaScript's ``toFixed(1)`` does and what already-persisted paths
    were produced with. Python's ``format(v, ".1f")`` rounds half to
    even and would disagree on values like 0.25.
    """
    text = str(Decimal(value).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP))
    if text == "-0.0":
        return "0.0"
    return text


def _fmt(x: float, y: float) -> str:
    return f"{format_coord(x)} {format_coord(y)}"


def stroke_commands(stroke: Sequence[Any]) -> list[str]:
    """Path commands for a single stroke, or ``[]`` if it is degenerate."""
    if len(stroke) < 2:
        return []

    scaled = []
    for point in stroke:
        x, y = coords(point)
        scaled.append((x * VIEWBOX_WIDTH, y * VIEWBOX_HEIGHT))

    commands = [f"M {_fmt(*scaled[0])}"]

    if len(scaled) == 2:
        commands.append(f"L {_fmt(*scaled[1])}")
        return commands

    for i in range(1, len(scaled) - 1):
        cx, cy = scaled[i]
        nx, ny = scaled[i + 1]
        mid_x = (cx + nx) / 2
        mid_y = (cy + ny) / 2
        commands.append(f"Q {_fmt(cx, cy)} {_fmt(mid_x, mid_y)}")

    commands.append(f"Q {_fmt(*scaled[-2])} {_fmt(*scaled[-1])}")
    return commands


def synthesize(strokes: Sequence[Sequence[Any]]) -> str:
    """Convert normalized strokes into one SVG path ``d`` string.

    Strokes are emitted in drawing order with no smoothing across stroke
    boundaries. A signature whose strokes are all degenerate yields
    an empty string.
    """
    parts: list[str] = []
    for stroke in strokes:
        parts.extend(stroke_commands(stroke))
    return " ".join(parts)


def render_svg(path: str, signer_name: Optional[str] = None) -> str:
    """Wrap a synthesized path in a standalone SVG document.

    Args:
        path: Path ``d`` string from :func:`synthesize`.
        signer_name: Used for the accessible label, if given.

    Returns:
        SVG markup using the canonical viewBox.
    """
    label = f"Signature of {signer_name}" if signer_name else "Signature"
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" '
        f'viewBox="0 0 {VIEWBOX_WIDTH} {VIEWBOX_HEIGHT}" '
        'preserveAspectRatio="xMidYMid meet" role="img" '
        f"aria-label={quoteattr(label)}>"
        f"<title>{escape(label)}</title>"
        f"<path d={quoteattr(path)} stroke=\"{INK_COLOR}\" "
        f'stroke-width="{LINE_WIDTH}" fill="none" '
        'stroke-linecap="round" stroke-linejoin="round"/>'
        "</svg>"
    )
