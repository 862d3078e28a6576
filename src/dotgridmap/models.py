"""Domain models shared across pipeline modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

Point = tuple[float, float]


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def is_finite_point(point: Any) -> bool:
    if point is None:
        return False
    try:
        x, y = point
        return math.isfinite(float(x)) and math.isfinite(float(y))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True, slots=True)
class GridCell:
    """Candidate dot center in canvas space; `index` is its identity."""

    index: int
    x: float
    y: float

    @property
    def position(self) -> Point:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class Record:
    """One ranked input row with its projected canvas position.

    `position` is None when the source coordinate could not be parsed or
    projected; `position_error` then says why. `raw_fields` carries display
    columns the pipeline never reads.
    """

    city: str
    metric: float
    raw_fields: Mapping[str, Any] = field(default_factory=dict)
    position: Point | None = None
    position_error: str | None = None

    @classmethod
    def create(
        cls,
        *,
        city: Any,
        metric: Any,
        raw_fields: Mapping[str, Any] | None = None,
        position: Point | None = None,
        position_error: str | None = None,
    ) -> Record:
        if isinstance(metric, bool) or not isinstance(metric, (int, float)):
            raise ValueError(f"Expected numeric metric for '{city}'")
        try:
            value = float(metric)
        except OverflowError as exc:
            raise ValueError(f"Metric for '{city}' is out of range") from exc
        if not math.isfinite(value):
            raise ValueError(f"Expected finite metric for '{city}', got {metric!r}")
        return cls(
            city=_require_str(city, "city"),
            metric=value,
            raw_fields=MappingProxyType(dict(raw_fields or {})),
            position=None if position is None else (float(position[0]), float(position[1])),
            position_error=position_error,
        )


@dataclass(frozen=True, slots=True)
class Assignment:
    record: Record
    cell: GridCell
    rank: int


@dataclass(frozen=True, slots=True)
class CellCollision:
    """A record whose nearest cell was already claimed earlier in input order."""

    record: Record
    claimant: Record
    cell_index: int


@dataclass(frozen=True, slots=True)
class UnprojectableRecord:
    record: Record
    reason: str


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    """Ranked assignments plus every per-record problem found on the way."""

    assignments: tuple[Assignment, ...]
    collisions: tuple[CellCollision, ...]
    unprojectable: tuple[UnprojectableRecord, ...]
    claims: Mapping[int, Record]
    snap_distances: Mapping[int, float] = field(default_factory=dict)

    @property
    def input_count(self) -> int:
        return len(self.assignments) + len(self.collisions) + len(self.unprojectable)

    @property
    def max_metric(self) -> float:
        return max((item.record.metric for item in self.assignments), default=0.0)

    @property
    def max_snap_distance(self) -> float:
        return max(self.snap_distances.values(), default=0.0)


@dataclass(frozen=True, slots=True)
class Box:
    """Axis-aligned rectangle in screen space."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Viewport:
    width: float
    height: float
