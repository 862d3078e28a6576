"""Tests for dot grid construction and boundary masking."""

import math

import pytest

from dotgridmap.grid import InvalidParameterError, build_dot_grid, centers, mask_grid


def test_grid_is_x_major_with_descending_y(small_grid) -> None:
    assert [cell.position for cell in small_grid] == [
        (5.0, 15.0),
        (5.0, 5.0),
        (15.0, 15.0),
        (15.0, 5.0),
        (25.0, 15.0),
        (25.0, 5.0),
    ]
    assert [cell.index for cell in small_grid] == list(range(6))


@pytest.mark.parametrize(
    ("step", "width", "height"),
    [(10, 960, 600), (7, 100, 33), (0.5, 3, 2.2), (25, 10, 10), (3, 30, 9)],
)
def test_grid_count_and_bounds(step: float, width: float, height: float) -> None:
    grid = build_dot_grid(step, width, height)
    xs = centers(step, width)
    ys = centers(step, height)
    assert len(grid) == len(xs) * len(ys)
    assert step / 2 + len(xs) * step >= width
    for cell in grid:
        assert step / 2 <= cell.x < width
        assert step / 2 <= cell.y < height


def test_centers_stop_before_extent() -> None:
    assert centers(10, 30) == [5.0, 15.0, 25.0]
    assert centers(10, 25) == [5.0, 15.0]
    assert centers(10, 5) == []


@pytest.mark.parametrize(("step", "extent"), [(0.02, 2.23), (0.02, 2.25), (0.1, 0.3), (0.3, 0.9)])
def test_centers_never_reach_extent_on_rounding_edges(step: float, extent: float) -> None:
    values = centers(step, extent)
    assert values
    assert values[-1] < extent
    assert step / 2 + len(values) * step >= extent


def test_centers_stay_in_half_open_range_across_sweep() -> None:
    bad = []
    for step_hundredths in range(1, 200):
        step = step_hundredths / 100
        for width_hundredths in range(1, 400):
            width = width_hundredths / 100
            values = centers(step, width)
            if values and not (step / 2 <= values[0] and values[-1] < width):
                bad.append((step, width, values[-1]))
            if step / 2 + len(values) * step < width:
                bad.append((step, width, None))
    assert bad == []


@pytest.mark.parametrize(
    ("step", "width", "height"),
    [(0, 10, 10), (-1, 10, 10), (1, 0, 10), (1, 10, -5), (math.nan, 10, 10), (True, 10, 10)],
)
def test_invalid_parameters_raise(step, width, height) -> None:
    with pytest.raises(InvalidParameterError):
        build_dot_grid(step, width, height)


def test_mask_keeps_order_and_renumbers(small_grid) -> None:
    masked = mask_grid(small_grid, lambda p: p, lambda lon, lat: lon > 10)
    assert [cell.position for cell in masked] == [
        (15.0, 15.0),
        (15.0, 5.0),
        (25.0, 15.0),
        (25.0, 5.0),
    ]
    assert [cell.index for cell in masked] == [0, 1, 2, 3]


def test_mask_is_subsequence_of_input(small_grid) -> None:
    masked = mask_grid(small_grid, lambda p: p, lambda lon, lat: (lon + lat) % 20 == 0)
    source = iter(cell.position for cell in small_grid)
    assert all(cell.position in source for cell in masked)
    assert len(masked) <= len(small_grid)


def test_mask_drops_cells_outside_projection_domain(small_grid) -> None:
    def invert(point):
        return (math.nan, math.nan) if point[0] > 20 else point

    masked = mask_grid(small_grid, invert, lambda lon, lat: True)
    assert len(masked) == 4
    assert all(cell.x < 20 for cell in masked)
