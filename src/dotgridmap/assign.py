"""Nearest-free-cell assignment with collision detection and dense ranking."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Sequence

from .models import (
    Assignment,
    AssignmentResult,
    CellCollision,
    GridCell,
    Record,
    UnprojectableRecord,
    is_finite_point,
)
from .spatial_index import NearestCellIndex

_LOGGER = logging.getLogger("dotgridmap.assign")


def assign_records(
    grid: Sequence[GridCell],
    index: NearestCellIndex,
    records: Iterable[Record],
) -> AssignmentResult:
    """Claim the nearest cell for each record in input order.

    The first record to reach a cell keeps it; later records that resolve to
    the same cell are reported as collisions and left out of the ranking.
    Records without a finite position are reported as unprojectable.
    """
    if len(index) != len(grid):
        raise ValueError(
            f"Spatial index covers {len(index)} cells but grid has {len(grid)}"
        )

    claims: dict[int, Record] = {}
    claimed_cells: list[tuple[Record, GridCell]] = []
    collisions: list[CellCollision] = []
    unprojectable: list[UnprojectableRecord] = []
    snap_distances: dict[int, float] = {}

    for record in records:
        if record.position is None:
            reason = record.position_error or "position unavailable"
            unprojectable.append(UnprojectableRecord(record, reason))
            _LOGGER.warning("%s has no projected position (%s); skipped", record.city, reason)
            continue
        if not is_finite_point(record.position):
            unprojectable.append(UnprojectableRecord(record, "non-finite position"))
            _LOGGER.warning(
                "%s projected to non-finite position %s; skipped",
                record.city,
                record.position,
            )
            continue

        cell_index, distance = index.nearest_with_distance(record.position)
        claimant = claims.get(cell_index)
        if claimant is not None:
            collisions.append(CellCollision(record, claimant, cell_index))
            _LOGGER.error(
                "%s and %s are located in the same position index %d",
                claimant.city,
                record.city,
                cell_index,
            )
            continue

        claims[cell_index] = record
        claimed_cells.append((record, grid[cell_index]))
        snap_distances[cell_index] = distance
        _LOGGER.debug("%s -> cell %d (%.2f units away)", record.city, cell_index, distance)

    ranked = sorted(claimed_cells, key=lambda item: -item[0].metric)
    assignments = tuple(
        Assignment(record=record, cell=cell, rank=rank)
        for rank, (record, cell) in enumerate(ranked, start=1)
    )
    return AssignmentResult(
        assignments=assignments,
        collisions=tuple(collisions),
        unprojectable=tuple(unprojectable),
        claims=MappingProxyType(claims),
        snap_distances=MappingProxyType(snap_distances),
    )
