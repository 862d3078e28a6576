"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .projection import Margins


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    return {} if value is None else _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _positive_float(value: Any, field_name: str) -> float:
    out = _float(value, field_name)
    if out <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return out


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _str_mapping(value: Any, field_name: str) -> dict[str, str]:
    raw = _optional_mapping(value, field_name)
    return {
        _str(key, f"{field_name} key"): _str(item, f"{field_name}.{key}")
        for key, item in raw.items()
    }


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    records_csv: Path
    boundary: Path
    grid_cache_dir: Path
    output_dir: Path
    logs_dir: Path

    @property
    def required_input_files(self) -> tuple[Path, ...]:
        return (self.records_csv, self.boundary)

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.grid_cache_dir, self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            records_csv=_path_from_cfg(raw.get("records_csv"), "paths.records_csv", root_dir),
            boundary=_path_from_cfg(raw.get("boundary"), "paths.boundary", root_dir),
            grid_cache_dir=_path_from_cfg(
                raw.get("grid_cache_dir", "build/grids"), "paths.grid_cache_dir", root_dir
            ),
            output_dir=_path_from_cfg(raw.get("output_dir", "build"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class GridConfig:
    step: float
    bounded_width: float
    margins: Margins

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> GridConfig:
        margins_raw = _optional_mapping(raw.get("margins"), "grid.margins")
        return cls(
            step=_positive_float(raw.get("step", 10), "grid.step"),
            bounded_width=_positive_float(raw.get("bounded_width", 960), "grid.bounded_width"),
            margins=Margins(
                top=_float(margins_raw.get("top", 20), "grid.margins.top"),
                right=_float(margins_raw.get("right", 20), "grid.margins.right"),
                bottom=_float(margins_raw.get("bottom", 20), "grid.margins.bottom"),
                left=_float(margins_raw.get("left", -20), "grid.margins.left"),
            ),
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    crs: str
    boundary_layer: str | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        layer_raw = raw.get("boundary_layer")
        return cls(
            crs=_str(raw.get("crs", "EPSG:5070"), "projection.crs"),
            boundary_layer=(
                _str(layer_raw, "projection.boundary_layer") if layer_raw is not None else None
            ),
        )


@dataclass(frozen=True, slots=True)
class RecordsConfig:
    city_field: str
    coordinate_field: str
    metric_field: str
    display_fields: Mapping[str, str]
    display_units: Mapping[str, str]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RecordsConfig:
        metric_field = _str(
            raw.get("metric_field", "Annual ridership (2024) (millions)"),
            "records.metric_field",
        )
        display_raw = raw.get("display_fields")
        if display_raw is None:
            display_fields = {
                "Annual ridership (2024)": metric_field,
                "# of Lines": "Lines",
                "System length": "System length (mi)",
            }
            display_units = {"Annual ridership (2024)": "millions", "System length": "mi"}
        else:
            display_fields = _str_mapping(display_raw, "records.display_fields")
            display_units = _str_mapping(raw.get("display_units"), "records.display_units")
        unknown_units = sorted(set(display_units) - set(display_fields))
        if unknown_units:
            raise ValueError(
                "records.display_units has labels missing from display_fields: "
                + ", ".join(unknown_units)
            )
        return cls(
            city_field=_str(raw.get("city_field", "City"), "records.city_field"),
            coordinate_field=_str(raw.get("coordinate_field", "LatLong"), "records.coordinate_field"),
            metric_field=metric_field,
            display_fields=display_fields,
            display_units=display_units,
        )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    dot_radius: float | None
    max_bubble_radius: float
    dpi: int
    format: str
    dot_color: str
    bubble_color: str
    bubble_edge_color: str
    rank_color: str
    font_size: float

    def effective_dot_radius(self, step: float) -> float:
        return self.dot_radius if self.dot_radius is not None else step / 2 - 1

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        dot_radius_raw = raw.get("dot_radius")
        fmt = _str(raw.get("format", "png"), "render.format").casefold()
        if fmt not in {"png", "svg", "pdf"}:
            raise ValueError("render.format must be one of: pdf, png, svg")
        return cls(
            dot_radius=(
                _positive_float(dot_radius_raw, "render.dot_radius")
                if dot_radius_raw is not None
                else None
            ),
            max_bubble_radius=_positive_float(
                raw.get("max_bubble_radius", 100), "render.max_bubble_radius"
            ),
            dpi=_int(raw.get("dpi", 100), "render.dpi"),
            format=fmt,
            dot_color=_str(raw.get("dot_color", "#d9d9d9"), "render.dot_color"),
            bubble_color=_str(raw.get("bubble_color", "#e4572e66"), "render.bubble_color"),
            bubble_edge_color=_str(
                raw.get("bubble_edge_color", "#e4572e"), "render.bubble_edge_color"
            ),
            rank_color=_str(raw.get("rank_color", "#222222"), "render.rank_color"),
            font_size=_positive_float(raw.get("font_size", 8), "render.font_size"),
        )


@dataclass(frozen=True, slots=True)
class TooltipConfig:
    gap: float
    number_grouping: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TooltipConfig:
        gap = _float(raw.get("gap", 4.0), "tooltip.gap")
        if gap < 0:
            raise ValueError("tooltip.gap must be >= 0")
        return cls(
            gap=gap,
            number_grouping=_bool(raw.get("number_grouping", True), "tooltip.number_grouping"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    grid: GridConfig
    projection: ProjectionConfig
    records: RecordsConfig
    render: RenderConfig
    tooltip: TooltipConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            grid=GridConfig.from_mapping(_optional_mapping(raw.get("grid"), "grid")),
            projection=ProjectionConfig.from_mapping(
                _optional_mapping(raw.get("projection"), "projection")
            ),
            records=RecordsConfig.from_mapping(_optional_mapping(raw.get("records"), "records")),
            render=RenderConfig.from_mapping(_optional_mapping(raw.get("render"), "render")),
            tooltip=TooltipConfig.from_mapping(_optional_mapping(raw.get("tooltip"), "tooltip")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
