"""Persisted form of a masked grid: an ordered list of GeoJSON point features."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping, Sequence

from .models import GridCell
from .util import read_json, write_json


class GridFormatError(ValueError):
    """Raised when a persisted grid does not match the interchange format."""


def cell_to_feature(cell: GridCell) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [cell.x, cell.y]},
        "properties": {"index": cell.index},
    }


def grid_to_features(grid: Sequence[GridCell]) -> list[dict[str, Any]]:
    return [cell_to_feature(cell) for cell in grid]


def grid_from_features(raw: Any) -> tuple[GridCell, ...]:
    """Parse and validate interchange features into grid cells.

    Accepts a bare feature list or a FeatureCollection. Every feature must be a
    Point whose `properties.index` equals its position in the sequence.
    """
    if isinstance(raw, Mapping):
        if raw.get("type") != "FeatureCollection":
            raise GridFormatError("Expected a feature list or FeatureCollection")
        raw = raw.get("features")
    if not isinstance(raw, list):
        raise GridFormatError("Expected a list of grid features")

    cells: list[GridCell] = []
    for position, feature in enumerate(raw):
        if not isinstance(feature, Mapping):
            raise GridFormatError(f"Feature {position} is not a mapping")
        geometry = feature.get("geometry")
        if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
            raise GridFormatError(f"Feature {position} must have Point geometry")
        coords = geometry.get("coordinates")
        if not isinstance(coords, list) or len(coords) != 2:
            raise GridFormatError(f"Feature {position} has invalid coordinates")
        x, y = coords
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (x, y)):
            raise GridFormatError(f"Feature {position} has non-numeric coordinates")
        if not (math.isfinite(x) and math.isfinite(y)):
            raise GridFormatError(f"Feature {position} has non-finite coordinates")
        properties = feature.get("properties")
        index = properties.get("index") if isinstance(properties, Mapping) else None
        if isinstance(index, bool) or not isinstance(index, int):
            raise GridFormatError(f"Feature {position} is missing integer 'index' property")
        if index != position:
            raise GridFormatError(
                f"Feature {position} has index {index}; indices must be contiguous from 0"
            )
        cells.append(GridCell(index=index, x=float(x), y=float(y)))
    return tuple(cells)


def write_grid(path: Path, grid: Sequence[GridCell]) -> Path:
    write_json(path, grid_to_features(grid), indent=None)
    return path


def load_grid(path: Path) -> tuple[GridCell, ...]:
    if not path.exists():
        raise FileNotFoundError(f"Grid file not found: {path}")
    try:
        raw = read_json(path)
    except ValueError as exc:
        raise GridFormatError(f"Grid file is not valid JSON: {path}: {exc}") from exc
    return grid_from_features(raw)
