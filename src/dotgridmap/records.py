"""CSV record loading and projection into canvas space."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pandas as pd

from .config import RecordsConfig
from .models import Point, Record

_LOGGER = logging.getLogger("dotgridmap.records")

_INT_RE = re.compile(r"^[+-]?\d+$")

Forward = Callable[[float, float], Point]


@dataclass(slots=True)
class RecordLoadReport:
    records: list[Record] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    malformed_coordinates: list[str] = field(default_factory=list)


def auto_type(value: Any) -> Any:
    """Coerce CSV text the way a typed reader would: blanks to None, numbers to numbers."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    if _INT_RE.match(text):
        return int(text)
    try:
        number = float(text)
    except ValueError:
        return text
    return number if math.isfinite(number) else text


def parse_lat_long(text: Any) -> tuple[float, float]:
    """Parse a "lat, lon" string and return (lon, lat)."""
    if not isinstance(text, str):
        raise ValueError(f"Expected 'lat, lon' string, got {text!r}")
    parts = [part.strip() for part in text.split(",")]
    if len(parts) != 2:
        raise ValueError(f"Expected exactly two comma-separated values in {text!r}")
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise ValueError(f"Non-numeric coordinate in {text!r}") from exc
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"Non-finite coordinate in {text!r}")
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise ValueError(f"Coordinate out of range in {text!r}")
    return (lon, lat)


def read_rows(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: {path}")
    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    return [
        {str(key): auto_type(value) for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]


def records_from_rows(
    rows: list[dict[str, Any]],
    cfg: RecordsConfig,
    forward: Forward,
) -> RecordLoadReport:
    """Build records in row order.

    Rows with an unreadable coordinate keep `position=None` so the assigner can
    report them; rows without a name or numeric metric cannot be ranked and are
    skipped here.
    """
    report = RecordLoadReport()
    for row_number, row in enumerate(rows, start=1):
        city = row.get(cfg.city_field)
        metric = row.get(cfg.metric_field)
        if city is None or not str(city).strip():
            report.skipped.append(f"row {row_number}: missing '{cfg.city_field}'")
            continue
        city = str(city)
        if isinstance(metric, bool) or not isinstance(metric, (int, float)):
            report.skipped.append(f"{city}: non-numeric '{cfg.metric_field}' ({metric!r})")
            continue

        position: Point | None
        position_error: str | None
        try:
            lon, lat = parse_lat_long(row.get(cfg.coordinate_field))
        except ValueError as exc:
            report.malformed_coordinates.append(f"{city}: {exc}")
            _LOGGER.warning("Malformed coordinate for %s: %s", city, exc)
            position = None
            position_error = str(exc)
        else:
            position = forward(lon, lat)
            position_error = None

        try:
            record = Record.create(
                city=city,
                metric=metric,
                raw_fields=row,
                position=position,
                position_error=position_error,
            )
        except ValueError as exc:
            report.skipped.append(f"{city}: {exc}")
            continue
        report.records.append(record)

    for msg in report.skipped:
        _LOGGER.warning("Skipped record %s", msg)
    _LOGGER.info(
        "Loaded %d records (%d skipped, %d malformed coordinates)",
        len(report.records),
        len(report.skipped),
        len(report.malformed_coordinates),
    )
    return report


def load_records(path: Path, cfg: RecordsConfig, forward: Forward) -> RecordLoadReport:
    return records_from_rows(read_rows(path), cfg, forward)
