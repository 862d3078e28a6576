from __future__ import annotations

import json
from pathlib import Path

import pytest
from shapely.geometry import box

from dotgridmap.grid import build_dot_grid
from dotgridmap.models import GridCell, Record
from dotgridmap.projection import Margins, fit_canvas

# 10 x 10 degree box; with EPSG:4326 and a 100px canvas one degree is 10px.
BOX_BOUNDS = (-100.0, 35.0, -90.0, 45.0)


def make_record(city: str, metric: float, position: tuple[float, float] | None) -> Record:
    return Record.create(city=city, metric=metric, raw_fields={"City": city}, position=position)


@pytest.fixture
def small_grid() -> tuple[GridCell, ...]:
    # xs = 5, 15, 25; ys = 15, 5
    return build_dot_grid(10, 30, 20)


@pytest.fixture
def box_boundary():
    return box(*BOX_BOUNDS)


@pytest.fixture
def box_canvas(box_boundary):
    return fit_canvas(
        box_boundary,
        "EPSG:4326",
        bounded_width=100,
        margins=Margins(top=0, right=0, bottom=0, left=0),
    )


def write_boundary_geojson(path: Path, bounds: tuple[float, float, float, float]) -> Path:
    min_x, min_y, max_x, max_y = bounds
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "region"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [
                            [min_x, min_y],
                            [max_x, min_y],
                            [max_x, max_y],
                            [min_x, max_y],
                            [min_x, min_y],
                        ]
                    ],
                },
            }
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    data = tmp_path / "data"
    data.mkdir()
    write_boundary_geojson(data / "region.geojson", BOX_BOUNDS)
    (data / "systems.csv").write_text(
        "\n".join(
            [
                'City,LatLong,Annual ridership (2024) (millions),Lines,System length (mi)',
                'Alpha,"40.02, -95.03",100,3,12.5',
                'Beta,"40.04, -95.01",50,1,4',
                'Gamma,not a coordinate,75,2,8',
                'Delta,"38.2, -97.3",200,6,1250.25',
                "",
            ]
        ),
        encoding="utf-8",
    )
    (tmp_path / "config.yaml").write_text(
        "\n".join(
            [
                "paths:",
                "  records_csv: data/systems.csv",
                "  boundary: data/region.geojson",
                "  grid_cache_dir: build/grids",
                "  output_dir: build",
                "  logs_dir: build/logs",
                "grid:",
                "  step: 10",
                "  bounded_width: 100",
                "  margins: {top: 0, right: 0, bottom: 0, left: 0}",
                "projection:",
                "  crs: 'EPSG:4326'",
                "render:",
                "  max_bubble_radius: 20",
                "  dpi: 50",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return tmp_path
