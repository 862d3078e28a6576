"""Boundary loading, containment testing, and the masked-grid cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shapely.geometry import Point
from shapely.ops import unary_union
from shapely.prepared import prep

from .grid import Containment, build_dot_grid, mask_grid
from .interchange import load_grid, write_grid
from .models import GridCell
from .projection import CanvasProjection
from .util import sha256_bytes, sha256_text

_LOGGER = logging.getLogger("dotgridmap.boundary")


def load_boundary(path: Path, *, layer: str | None = None) -> Any:
    """Read a boundary file and dissolve all rows into one lon/lat geometry."""
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")
    gpd = _require_geopandas()
    kwargs: dict[str, Any] = {}
    if layer is not None:
        kwargs["layer"] = layer
    frame = gpd.read_file(path, **kwargs)
    if frame.crs is not None and not frame.crs.equals("EPSG:4326"):
        frame = frame.to_crs("EPSG:4326")
    geometries = [geom for geom in frame.geometry if geom is not None and not geom.is_empty]
    if not geometries:
        raise ValueError(f"Boundary file has no usable geometry: {path}")
    merged = unary_union(geometries)
    _LOGGER.info("Loaded boundary from %s (%d rows, %s)", path, len(frame), merged.geom_type)
    return merged


def containment_predicate(geometry: Any) -> Containment:
    """Prepared-geometry point test; points on the boundary line count as inside."""
    prepared = prep(geometry)

    def contains(lon: float, lat: float) -> bool:
        return bool(prepared.covers(Point(lon, lat)))

    return contains


def boundary_digest(geometry: Any) -> str:
    return sha256_bytes(geometry.wkb)


@dataclass(frozen=True, slots=True)
class MaskedGrid:
    cells: tuple[GridCell, ...]
    source: str
    path: Path | None = None


class GridCache:
    """Masked grids persisted by (boundary, projection, step).

    A cached file is used in place of recomputing the mask; both paths yield
    the same cells.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    def path_for(self, geometry: Any, projection: CanvasProjection, step: float) -> Path:
        key = sha256_text(f"{boundary_digest(geometry)}|{projection.key}|{float(step)!r}")
        return self.cache_dir / f"grid_{key[:16]}.json"

    def load_or_build(
        self,
        geometry: Any,
        projection: CanvasProjection,
        *,
        step: float,
        width: float,
        height: float,
        force: bool = False,
    ) -> MaskedGrid:
        path = self.path_for(geometry, projection, step)
        if path.exists() and not force:
            cells = load_grid(path)
            _LOGGER.info("Using cached grid %s (%d cells)", path, len(cells))
            return MaskedGrid(cells=cells, source="cache", path=path)

        cells = compute_masked_grid(
            geometry,
            projection,
            step=step,
            width=width,
            height=height,
        )
        write_grid(path, cells)
        _LOGGER.info("Masked grid written to %s", path)
        return MaskedGrid(cells=cells, source="computed", path=path)


def compute_masked_grid(
    geometry: Any,
    projection: CanvasProjection,
    *,
    step: float,
    width: float,
    height: float,
) -> tuple[GridCell, ...]:
    return mask_grid(
        build_dot_grid(step, width, height),
        projection.invert,
        containment_predicate(geometry),
    )


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for boundary loading") from exc
    return gpd
