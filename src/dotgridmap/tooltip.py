"""Tooltip placement and content.

`place_tooltip` is plain geometry over measured boxes. Measuring the boxes
and applying the offset belong to whatever surface draws the tooltip;
`css_translate` formats the offset for an HTML style attribute.
"""

from __future__ import annotations

from typing import Mapping

from .models import Assignment, Box, Viewport

DEFAULT_GAP = 4.0


def place_tooltip(
    anchor: Box,
    panel: Box,
    viewport: Viewport,
    *,
    gap: float = DEFAULT_GAP,
) -> tuple[float, float]:
    """Offset for a panel centered above `anchor`, flipped below when it does not fit.

    Horizontal overflow is clamped to the viewport edges. Vertical placement
    prefers above; when that runs off the top it goes below, and when below
    runs off the bottom it is pinned to the bottom edge. A panel larger than
    the viewport can still end up with a negative coordinate.
    """
    x = anchor.x + anchor.width / 2 - panel.width / 2
    if x < 0:
        x = 0.0
    elif x + panel.width > viewport.width:
        x = viewport.width - panel.width

    y = anchor.y - panel.height - gap
    if y < 0:
        y = anchor.y + anchor.height + gap
        if y + panel.height > viewport.height:
            y = viewport.height - panel.height
    return (x, y)


def css_translate(offset: tuple[float, float]) -> str:
    x, y = offset
    return f"translate({_css_number(x)}px,{_css_number(y)}px)"


def _css_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def format_number(value: float | None, *, grouping: bool = True) -> str:
    """en-US style number text: thousands separators, at most 3 decimals."""
    if value is None:
        return ""
    text = f"{value:,.3f}" if grouping else f"{value:.3f}"
    text = text.rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def tooltip_rows(
    assignment: Assignment,
    *,
    display_fields: Mapping[str, str] | None = None,
    units: Mapping[str, str] | None = None,
    grouping: bool = True,
) -> list[tuple[str, str]]:
    """Title row followed by one (label, value) row per display field."""
    rows = [("title", f"{assignment.rank}. {assignment.record.city}")]
    units = units or {}
    for label, column in (display_fields or {}).items():
        raw = assignment.record.raw_fields.get(column)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            value = format_number(float(raw), grouping=grouping)
        elif raw is None:
            value = ""
        else:
            value = str(raw)
        unit = units.get(label, "")
        rows.append((label, f"{value}{unit}" if value else value))
    return rows
