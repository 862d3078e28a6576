"""Canvas projection fitted to a boundary extent."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pyproj import Transformer
from pyproj.exceptions import ProjError
from shapely.ops import transform

from .models import Point

_NAN_POINT = (math.nan, math.nan)


@dataclass(frozen=True, slots=True)
class Margins:
    top: float
    right: float
    bottom: float
    left: float


@lru_cache(maxsize=8)
def _transformers(crs: str) -> tuple[Any, Any]:
    forward = Transformer.from_crs("EPSG:4326", crs, always_xy=True)
    inverse = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)
    return (forward, inverse)


@dataclass(frozen=True, slots=True)
class CanvasProjection:
    """lon/lat <-> canvas pixels: a pyproj CRS followed by scale and translate.

    Canvas y grows downward. Results outside the CRS domain come back as NaN.
    """

    crs: str
    scale: float
    translate_x: float
    translate_y: float

    @property
    def key(self) -> str:
        return f"{self.crs}|{self.scale!r}|{self.translate_x!r}|{self.translate_y!r}"

    def forward(self, lon: float, lat: float) -> Point:
        forward, _ = _transformers(self.crs)
        try:
            px, py = forward.transform(float(lon), float(lat), errcheck=True)
        except ProjError:
            return _NAN_POINT
        x = px * self.scale + self.translate_x
        y = -py * self.scale + self.translate_y
        if not (math.isfinite(x) and math.isfinite(y)):
            return _NAN_POINT
        return (x, y)

    def invert(self, point: Point) -> Point:
        _, inverse = _transformers(self.crs)
        px = (float(point[0]) - self.translate_x) / self.scale
        py = -(float(point[1]) - self.translate_y) / self.scale
        try:
            lon, lat = inverse.transform(px, py, errcheck=True)
        except ProjError:
            return _NAN_POINT
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return _NAN_POINT
        return (lon, lat)


def project_geometry(geometry: Any, crs: str) -> Any:
    forward, _ = _transformers(crs)
    return transform(forward.transform, geometry)


def fit_extent(
    geometry: Any,
    crs: str,
    *,
    x0: float,
    y0: float,
    x1: float,
    y1: float,
) -> CanvasProjection:
    """Uniformly scale and center the projected geometry inside the box."""
    min_x, min_y, max_x, max_y = (float(v) for v in project_geometry(geometry, crs).bounds)
    span_x = max(max_x - min_x, 1e-12)
    span_y = max(max_y - min_y, 1e-12)
    scale = min((x1 - x0) / span_x, (y1 - y0) / span_y)
    translate_x = x0 + ((x1 - x0) - scale * span_x) / 2 - scale * min_x
    translate_y = y0 + ((y1 - y0) - scale * span_y) / 2 + scale * max_y
    return CanvasProjection(
        crs=crs,
        scale=scale,
        translate_x=translate_x,
        translate_y=translate_y,
    )


def fit_canvas(
    geometry: Any,
    crs: str,
    *,
    bounded_width: float,
    margins: Margins,
) -> tuple[CanvasProjection, float, float]:
    """Fit the boundary to the canvas and derive the canvas size.

    The height follows from fitting the boundary to `bounded_width` first,
    then the final fit uses the margin-inset extent of the full canvas.
    """
    if bounded_width <= 0:
        raise ValueError("bounded_width must be > 0")
    width = bounded_width + margins.left + margins.bottom
    by_width = project_geometry(geometry, crs).bounds
    span_x = max(float(by_width[2]) - float(by_width[0]), 1e-12)
    span_y = float(by_width[3]) - float(by_width[1])
    # tolerate float noise so an exact fit does not round up a whole pixel
    bounded_height = math.ceil(span_y * bounded_width / span_x - 1e-9)
    height = bounded_height + margins.top + margins.bottom
    projection = fit_extent(
        geometry,
        crs,
        x0=margins.left,
        y0=margins.top,
        x1=width - margins.right,
        y1=height - margins.bottom,
    )
    return (projection, float(width), float(height))
