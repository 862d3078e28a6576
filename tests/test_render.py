"""Tests for bubble scaling and the assignment payload."""

import math

import pytest

from dotgridmap.assign import assign_records
from dotgridmap.render import ReportOptions, build_assignment_payload, bubble_radius
from dotgridmap.spatial_index import NearestCellIndex

from conftest import make_record


@pytest.mark.parametrize(
    ("value", "max_value", "expected"),
    [(100, 100, 100.0), (25, 100, 50.0), (0, 100, 0.0), (-4, 100, 0.0), (5, 0, 0.0), (math.nan, 10, 0.0)],
)
def test_bubble_radius_is_square_root_scaled(value, max_value, expected) -> None:
    assert bubble_radius(value, max_value, 100) == pytest.approx(expected)


def test_payload_lists_every_outcome(small_grid) -> None:
    records = [
        make_record("Big", 400, (5.0, 5.0)),
        make_record("Small", 100, (25.0, 15.0)),
        make_record("Late", 900, (5.5, 5.5)),
        make_record("Lost", 1, None),
    ]
    result = assign_records(small_grid, NearestCellIndex(small_grid), records)
    payload = build_assignment_payload(
        result,
        grid_size=len(small_grid),
        options=ReportOptions(max_bubble_radius=10),
        meta={"step": 10},
    )
    assert payload["meta"]["step"] == 10
    assert payload["summary"] == {
        "grid_cells": 6,
        "records_in": 4,
        "assigned": 2,
        "collisions": 1,
        "unprojectable": 1,
        "max_snap_distance": 0.0,
    }
    assert [(a["city"], a["bubble_radius"]) for a in payload["assignments"]] == [
        ("Big", 10.0),
        ("Small", 5.0),
    ]
    assert payload["assignments"][1]["tooltip"] == [{"label": "title", "value": "2. Small"}]
