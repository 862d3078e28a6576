"""Dot grid construction and boundary masking."""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

from .models import GridCell, Point, is_finite_point

_LOGGER = logging.getLogger("dotgridmap.grid")

InverseProjection = Callable[[Point], Point]
Containment = Callable[[float, float], bool]


class InvalidParameterError(ValueError):
    """Raised when grid construction inputs are unusable."""


def _require_positive(value: float, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError(f"{field_name} must be a number, got {value!r}")
    out = float(value)
    if not math.isfinite(out) or out <= 0:
        raise InvalidParameterError(f"{field_name} must be > 0, got {value!r}")
    return out


def centers(step: float, extent: float) -> list[float]:
    """Centers `step/2 + i*step` strictly below `extent`."""
    start = step / 2
    out: list[float] = []
    i = 0
    while start + i * step < extent:
        out.append(start + i * step)
        i += 1
    return out


def build_dot_grid(step: float, width: float, height: float) -> tuple[GridCell, ...]:
    """Build the x-major lattice of cell centers with y descending per column."""
    step = _require_positive(step, "step")
    width = _require_positive(width, "width")
    height = _require_positive(height, "height")

    xs = centers(step, width)
    ys = centers(step, height)
    ys.reverse()
    cells = tuple(
        GridCell(index=idx, x=x, y=y)
        for idx, (x, y) in enumerate((x, y) for x in xs for y in ys)
    )
    _LOGGER.debug("Built %d x %d dot grid (step=%s)", len(xs), len(ys), step)
    return cells


def mask_grid(
    grid: Sequence[GridCell],
    invert: InverseProjection,
    contains: Containment,
) -> tuple[GridCell, ...]:
    """Keep cells whose inverse-projected center lies in the boundary.

    Surviving cells keep their relative order and are renumbered from 0.
    Cells the projection cannot invert are dropped.
    """
    kept: list[GridCell] = []
    dropped_unprojectable = 0
    for cell in grid:
        geo = invert(cell.position)
        if not is_finite_point(geo):
            dropped_unprojectable += 1
            continue
        lon, lat = geo
        if contains(float(lon), float(lat)):
            kept.append(GridCell(index=len(kept), x=cell.x, y=cell.y))
    _LOGGER.info(
        "Boundary mask kept %d of %d cells (%d outside projection domain)",
        len(kept),
        len(grid),
        dropped_unprojectable,
    )
    return tuple(kept)
