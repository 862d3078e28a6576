"""CLI entrypoint for the dot grid map builder."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .models import Box, Viewport
from .pipeline import format_pipeline_lines, run_assign, run_build_grid
from .tooltip import DEFAULT_GAP, css_translate, place_tooltip
from .util import ensure_directories, setup_logging

LOGGER = logging.getLogger("dotgridmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotgridmap",
        description="Ranked bubbles on a boundary-masked dot grid.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    grid_p = subparsers.add_parser(
        "build-grid",
        help="Compute the boundary-masked grid and write it to the grid cache.",
    )
    add_common(grid_p)
    grid_p.add_argument(
        "--force",
        action="store_true",
        help="Recompute the mask even when a cached grid exists.",
    )

    assign_p = subparsers.add_parser(
        "assign",
        help="Assign records to grid cells and write the JSON report.",
    )
    add_common(assign_p)
    assign_p.add_argument(
        "--force-grid",
        action="store_true",
        help="Recompute the masked grid instead of using the cache.",
    )

    render_p = subparsers.add_parser("render", help="Assign records and render the dot map.")
    add_common(render_p)
    render_p.add_argument(
        "--force-grid",
        action="store_true",
        help="Recompute the masked grid instead of using the cache.",
    )

    tooltip_p = subparsers.add_parser(
        "place-tooltip",
        help="Print the tooltip offset for an anchor box, panel size, and viewport.",
    )
    add_common(tooltip_p)
    tooltip_p.add_argument("--anchor", nargs=4, type=float, required=True, metavar=("X", "Y", "W", "H"))
    tooltip_p.add_argument("--panel", nargs=2, type=float, required=True, metavar=("W", "H"))
    tooltip_p.add_argument("--viewport", nargs=2, type=float, required=True, metavar=("W", "H"))
    tooltip_p.add_argument(
        "--gap",
        type=float,
        default=None,
        help="Gap between anchor and panel (default: tooltip.gap from config).",
    )

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "dotgridmap.log", verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _run_place_tooltip(args: argparse.Namespace) -> int:
    gap = DEFAULT_GAP
    if Path(args.config).exists():
        gap = _load_and_setup(args).tooltip.gap
    else:
        setup_logging(verbose=args.verbose)
        LOGGER.debug("No config at %s; using default tooltip settings", args.config)
    if args.gap is not None:
        gap = args.gap

    x, y, w, h = args.anchor
    panel_w, panel_h = args.panel
    view_w, view_h = args.viewport
    offset = place_tooltip(
        Box(x, y, w, h),
        Box(0.0, 0.0, panel_w, panel_h),
        Viewport(view_w, view_h),
        gap=gap,
    )
    print(css_translate(offset))
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    command = str(args.command)
    if command == "place-tooltip":
        return _run_place_tooltip(args)

    cfg = _load_and_setup(args)
    if command == "build-grid":
        report = run_build_grid(cfg, force=bool(args.force))
    elif command == "assign":
        report = run_assign(cfg, force_grid=bool(args.force_grid))
    elif command == "render":
        report = run_assign(cfg, render_image=True, force_grid=bool(args.force_grid))
    else:
        raise ValueError(f"Unknown command: {command}")

    for line in format_pipeline_lines(report):
        LOGGER.info(line)
    if not report.ok:
        LOGGER.error("%s aborted due to errors.", command)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
