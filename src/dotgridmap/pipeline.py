"""End-to-end runs: masked grid, record assignment, report and image output."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .assign import assign_records
from .boundary import GridCache, MaskedGrid, load_boundary
from .config import AppConfig
from .grid import InvalidParameterError
from .interchange import GridFormatError
from .models import AssignmentResult
from .projection import CanvasProjection, fit_canvas
from .records import load_records
from .render import DotMapRenderer, RenderRequest, ReportOptions, write_assignment_report
from .spatial_index import NearestCellIndex
from .util import format_code_list

_LOGGER = logging.getLogger("dotgridmap.pipeline")


@dataclass(frozen=True, slots=True)
class Canvas:
    boundary: Any
    projection: CanvasProjection
    width: float
    height: float


@dataclass(slots=True)
class PipelineReport:
    grid_path: Path | None = None
    output_path: Path | None = None
    image_path: Path | None = None
    result: AssignmentResult | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def prepare_canvas(cfg: AppConfig) -> Canvas:
    boundary = load_boundary(cfg.paths.boundary, layer=cfg.projection.boundary_layer)
    projection, width, height = fit_canvas(
        boundary,
        cfg.projection.crs,
        bounded_width=cfg.grid.bounded_width,
        margins=cfg.grid.margins,
    )
    _LOGGER.debug("Canvas %sx%s with projection %s", width, height, projection.key)
    return Canvas(boundary=boundary, projection=projection, width=width, height=height)


def _masked_grid(cfg: AppConfig, canvas: Canvas, *, force: bool) -> MaskedGrid:
    return GridCache(cfg.paths.grid_cache_dir).load_or_build(
        canvas.boundary,
        canvas.projection,
        step=cfg.grid.step,
        width=canvas.width,
        height=canvas.height,
        force=force,
    )


def run_build_grid(cfg: AppConfig, *, force: bool = False) -> PipelineReport:
    """Compute (or reuse) the masked grid for the configured boundary and step."""
    report = PipelineReport()
    try:
        canvas = prepare_canvas(cfg)
        masked = _masked_grid(cfg, canvas, force=force)
    except (OSError, ValueError, RuntimeError) as exc:
        report.add_error(f"Grid build failed: {exc}")
        return report
    report.grid_path = masked.path
    report.summary = {"grid_cells": len(masked.cells)}
    report.add_info(f"Masked grid ({masked.source}) has {len(masked.cells)} cells at {masked.path}")
    return report


def run_assign(
    cfg: AppConfig,
    *,
    render_image: bool = False,
    force_grid: bool = False,
) -> PipelineReport:
    """Load every input, then assign and rank records in one pass.

    Any input failure abandons the run before assignment; per-record problems
    only become warnings.
    """
    report = PipelineReport()
    missing = [path for path in cfg.paths.required_input_files if not path.exists()]
    if missing:
        report.add_error("Missing required input file(s): " + ", ".join(str(p) for p in missing))
        return report

    try:
        canvas = prepare_canvas(cfg)
        masked = _masked_grid(cfg, canvas, force=force_grid)
        loaded = load_records(cfg.paths.records_csv, cfg.records, canvas.projection.forward)
        index = NearestCellIndex(masked.cells)
    except (InvalidParameterError, GridFormatError) as exc:
        report.add_error(f"Pipeline construction failed: {exc}")
        return report
    except (OSError, ValueError, RuntimeError) as exc:
        report.add_error(f"Failed loading inputs: {exc}")
        return report

    report.grid_path = masked.path
    report.add_info(f"Masked grid ({masked.source}): {len(masked.cells)} cells")
    if loaded.skipped:
        report.add_warning("Skipped rows: " + format_code_list(loaded.skipped))

    result = assign_records(masked.cells, index, loaded.records)
    report.result = result

    if result.collisions:
        report.add_warning(
            "Cell collisions (record lost to earlier claimant): "
            + format_code_list(
                [
                    f"{item.record.city}->{item.claimant.city}@{item.cell_index}"
                    for item in result.collisions
                ]
            )
        )
    if result.unprojectable:
        report.add_warning(
            "Unprojectable records: "
            + format_code_list([f"{item.record.city}({item.reason})" for item in result.unprojectable])
        )

    output_path = cfg.paths.output_dir / "assignments.json"
    try:
        write_assignment_report(
            output_path,
            result,
            grid_size=len(masked.cells),
            options=ReportOptions(
                max_bubble_radius=cfg.render.max_bubble_radius,
                display_fields=cfg.records.display_fields,
                display_units=cfg.records.display_units,
                number_grouping=cfg.tooltip.number_grouping,
            ),
            meta={
                "records_csv": str(cfg.paths.records_csv),
                "boundary": str(cfg.paths.boundary),
                "grid_path": str(masked.path) if masked.path else None,
                "grid_source": masked.source,
                "canvas": {"width": canvas.width, "height": canvas.height},
                "step": cfg.grid.step,
                "crs": cfg.projection.crs,
            },
        )
    except OSError as exc:
        report.add_error(f"Writing assignment report failed: {exc}")
    else:
        report.output_path = output_path
        report.add_info(f"Assignment report written to {output_path}")

    if render_image:
        image_path = cfg.paths.output_dir / f"dot_map.{cfg.render.format}"
        try:
            DotMapRenderer(cfg.render).render(
                RenderRequest(
                    grid=masked.cells,
                    result=result,
                    width=canvas.width,
                    height=canvas.height,
                    step=cfg.grid.step,
                    output_path=image_path,
                )
            )
        except (OSError, RuntimeError, ValueError) as exc:
            report.add_error(f"Rendering failed: {exc}")
        else:
            report.image_path = image_path
            report.add_info(f"Dot map written to {image_path}")

    report.summary = {
        "grid_cells": len(masked.cells),
        "records_loaded": len(loaded.records),
        "rows_skipped": len(loaded.skipped),
        "assigned": len(result.assignments),
        "collisions": len(result.collisions),
        "unprojectable": len(result.unprojectable),
    }
    return report


def format_pipeline_lines(report: PipelineReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.summary:
        lines.append(
            "[INFO] Summary: "
            + ", ".join(f"{key}={value}" for key, value in report.summary.items())
        )
    if report.ok:
        lines.append("[OK] Completed with no errors.")
    return lines
