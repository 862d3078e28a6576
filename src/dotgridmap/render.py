"""Dot map rendering and the JSON assignment report."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config import RenderConfig
from .models import AssignmentResult, GridCell
from .tooltip import tooltip_rows
from .util import write_json

_LOGGER = logging.getLogger("dotgridmap.render")

_RANK_LABEL_OFFSET = 2.0


def bubble_radius(value: float, max_value: float, max_radius: float) -> float:
    """Square-root scale from [0, max_value] onto [0, max_radius]."""
    if max_value <= 0 or value <= 0 or not math.isfinite(value):
        return 0.0
    return max_radius * math.sqrt(value / max_value)


@dataclass(frozen=True, slots=True)
class RenderRequest:
    grid: Sequence[GridCell]
    result: AssignmentResult
    width: float
    height: float
    step: float
    output_path: Path


@dataclass(frozen=True, slots=True)
class ReportOptions:
    max_bubble_radius: float
    display_fields: Mapping[str, str] = field(default_factory=dict)
    display_units: Mapping[str, str] = field(default_factory=dict)
    number_grouping: bool = True


class DotMapRenderer:
    """Draws the masked grid, ranked bubbles, and rank labels in canvas pixels."""

    def __init__(self, cfg: RenderConfig) -> None:
        self.cfg = cfg

    def render(self, req: RenderRequest) -> Path:
        plt, patches = _require_matplotlib()
        dpi = self.cfg.dpi
        fig = plt.figure(figsize=(req.width / dpi, req.height / dpi), dpi=dpi)
        try:
            ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
            ax.set_xlim(0, req.width)
            ax.set_ylim(req.height, 0)
            ax.set_aspect("equal")
            ax.axis("off")

            dot_radius = self.cfg.effective_dot_radius(req.step)
            for cell in req.grid:
                ax.add_patch(
                    patches.Circle(cell.position, dot_radius, color=self.cfg.dot_color, lw=0)
                )

            max_metric = req.result.max_metric
            for assignment in req.result.assignments:
                radius = bubble_radius(
                    assignment.record.metric, max_metric, self.cfg.max_bubble_radius
                )
                x, y = assignment.cell.position
                ax.add_patch(
                    patches.Circle(
                        (x, y),
                        radius,
                        facecolor=self.cfg.bubble_color,
                        edgecolor=self.cfg.bubble_edge_color,
                        lw=0.8,
                    )
                )
                ax.add_patch(
                    patches.Circle((x, y), dot_radius, color=self.cfg.bubble_edge_color, lw=0)
                )
                ax.text(
                    x,
                    y - radius - _RANK_LABEL_OFFSET,
                    str(assignment.rank),
                    ha="center",
                    va="bottom",
                    fontsize=self.cfg.font_size,
                    color=self.cfg.rank_color,
                )

            req.output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(req.output_path, dpi=dpi, format=self.cfg.format)
        finally:
            plt.close(fig)
        _LOGGER.info(
            "Rendered %d dots and %d bubbles to %s",
            len(req.grid),
            len(req.result.assignments),
            req.output_path,
        )
        return req.output_path


def build_assignment_payload(
    result: AssignmentResult,
    *,
    grid_size: int,
    options: ReportOptions,
    meta: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    max_metric = result.max_metric
    assignments = [
        {
            "rank": item.rank,
            "city": item.record.city,
            "metric": item.record.metric,
            "cell_index": item.cell.index,
            "position": [item.cell.x, item.cell.y],
            "bubble_radius": bubble_radius(
                item.record.metric, max_metric, options.max_bubble_radius
            ),
            "snap_distance": result.snap_distances.get(item.cell.index),
            "tooltip": [
                {"label": label, "value": value}
                for label, value in tooltip_rows(
                    item,
                    display_fields=options.display_fields,
                    units=options.display_units,
                    grouping=options.number_grouping,
                )
            ],
        }
        for item in result.assignments
    ]
    return {
        "meta": {
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            **dict(meta or {}),
        },
        "summary": {
            "grid_cells": grid_size,
            "records_in": result.input_count,
            "assigned": len(result.assignments),
            "collisions": len(result.collisions),
            "unprojectable": len(result.unprojectable),
            "max_snap_distance": result.max_snap_distance,
        },
        "assignments": assignments,
        "collisions": [
            {
                "city": item.record.city,
                "claimed_by": item.claimant.city,
                "cell_index": item.cell_index,
            }
            for item in result.collisions
        ],
        "unprojectable": [
            {"city": item.record.city, "reason": item.reason} for item in result.unprojectable
        ],
    }


def write_assignment_report(
    path: Path,
    result: AssignmentResult,
    *,
    grid_size: int,
    options: ReportOptions,
    meta: Mapping[str, Any] | None = None,
) -> Path:
    write_json(
        path,
        build_assignment_payload(result, grid_size=grid_size, options=options, meta=meta),
    )
    return path


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.patches as patches
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (plt, patches)
