"""Nearest-cell lookup over a masked grid."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.spatial import cKDTree

from .grid import InvalidParameterError
from .models import GridCell, Point


class NearestCellIndex:
    """k-d tree over cell centers answering "closest cell to this point".

    Equidistant cells resolve to the lowest index, so results do not depend on
    tree layout.
    """

    def __init__(self, grid: Sequence[GridCell]) -> None:
        if not grid:
            raise InvalidParameterError("Cannot build a spatial index over an empty grid")
        for position, cell in enumerate(grid):
            if cell.index != position:
                raise InvalidParameterError(
                    f"Grid cell at position {position} has index {cell.index}"
                )
        self._points = np.array([(cell.x, cell.y) for cell in grid], dtype=float)
        self._tree = cKDTree(self._points)

    def __len__(self) -> int:
        return int(self._points.shape[0])

    def nearest(self, point: Point) -> int:
        return self.nearest_with_distance(point)[0]

    def nearest_with_distance(self, point: Point) -> tuple[int, float]:
        x, y = float(point[0]), float(point[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"Cannot query nearest cell for non-finite point {point!r}")
        nearest_distance, _ = self._tree.query((x, y), k=1)
        # every cell at the nearest distance, with slack for tree rounding
        radius = float(nearest_distance) * (1 + 1e-9) + 1e-12
        indices = np.asarray(self._tree.query_ball_point((x, y), r=radius), dtype=int)
        exact = ((self._points[indices] - (x, y)) ** 2).sum(axis=1)
        best_exact = float(exact.min())
        tied = [int(idx) for idx, d2 in zip(indices, exact) if d2 == best_exact]
        return (min(tied), math.sqrt(best_exact))
