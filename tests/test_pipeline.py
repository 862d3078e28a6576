"""End-to-end tests over a small boundary and CSV."""

import json

from dotgridmap.cli import main
from dotgridmap.config import load_config
from dotgridmap.pipeline import format_pipeline_lines, run_assign, run_build_grid


def test_build_grid_then_reuse(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    first = run_build_grid(cfg)
    assert first.ok
    assert first.summary == {"grid_cells": 100}
    assert first.grid_path is not None and first.grid_path.exists()
    assert "(computed)" in first.infos[0]

    second = run_build_grid(cfg)
    assert "(cache)" in second.infos[0]
    assert second.grid_path == first.grid_path


def test_assign_writes_ranked_report(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    report = run_assign(cfg)
    assert report.ok, report.errors
    assert report.summary == {
        "grid_cells": 100,
        "records_loaded": 4,
        "rows_skipped": 0,
        "assigned": 2,
        "collisions": 1,
        "unprojectable": 1,
    }

    payload = json.loads(report.output_path.read_text(encoding="utf-8"))
    assert [(a["rank"], a["city"]) for a in payload["assignments"]] == [(1, "Delta"), (2, "Alpha")]
    assert payload["collisions"] == [{"city": "Beta", "claimed_by": "Alpha", "cell_index": 45}]
    assert payload["unprojectable"] == [
        {"city": "Gamma", "reason": "Expected exactly two comma-separated values in 'not a coordinate'"}
    ]

    delta = payload["assignments"][0]
    assert delta["position"] == [25.0, 65.0]
    assert delta["bubble_radius"] == 20.0
    assert delta["tooltip"][0] == {"label": "title", "value": "1. Delta"}
    assert {"label": "System length", "value": "1,250.25mi"} in delta["tooltip"]
    assert payload["summary"]["records_in"] == 4
    assert any(line.startswith("[WARN] Cell collisions") for line in format_pipeline_lines(report))


def test_missing_input_abandons_run(project_dir) -> None:
    (project_dir / "data" / "systems.csv").unlink()
    cfg = load_config(project_dir / "config.yaml")
    report = run_assign(cfg)
    assert not report.ok
    assert report.output_path is None
    assert report.result is None


def test_corrupt_cached_grid_is_fatal(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    built = run_build_grid(cfg)
    built.grid_path.write_text('[{"type": "Feature"}]', encoding="utf-8")
    report = run_assign(cfg)
    assert not report.ok
    assert report.errors[0].startswith("Pipeline construction failed")


def test_render_writes_image(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    report = run_assign(cfg, render_image=True)
    assert report.ok, report.errors
    assert report.image_path is not None
    assert report.image_path.name == "dot_map.png"
    assert report.image_path.stat().st_size > 0


def test_cli_assign_exit_codes(project_dir) -> None:
    config_path = str(project_dir / "config.yaml")
    assert main(["assign", "--config", config_path]) == 0
    (project_dir / "data" / "region.geojson").unlink()
    assert main(["assign", "--config", config_path]) == 1


def test_cli_place_tooltip(tmp_path, capsys) -> None:
    code = main(
        [
            "place-tooltip",
            "--config", str(tmp_path / "absent.yaml"),
            "--anchor", "500", "10", "20", "20",
            "--panel", "200", "80",
            "--viewport", "1000", "800",
        ]
    )
    assert code == 0
    assert capsys.readouterr().out.strip() == "translate(410px,34px)"


def _place_tooltip_args(config_path, *extra: str) -> list[str]:
    return [
        "place-tooltip",
        "--config", str(config_path),
        "--anchor", "500", "10", "20", "20",
        "--panel", "200", "80",
        "--viewport", "1000", "800",
        *extra,
    ]


def test_cli_place_tooltip_uses_config_gap(project_dir, capsys) -> None:
    config_path = project_dir / "config.yaml"
    with config_path.open("a", encoding="utf-8") as fh:
        fh.write("tooltip:\n  gap: 10\n")
    assert main(_place_tooltip_args(config_path)) == 0
    assert capsys.readouterr().out.strip() == "translate(410px,40px)"

    assert main(_place_tooltip_args(config_path, "--gap", "4")) == 0
    assert capsys.readouterr().out.strip() == "translate(410px,34px)"


def test_write_failure_is_reported(project_dir) -> None:
    cfg = load_config(project_dir / "config.yaml")
    (cfg.paths.output_dir / "assignments.json").mkdir(parents=True)
    report = run_assign(cfg)
    assert not report.ok
    assert report.errors[0].startswith("Writing assignment report failed")
    assert report.output_path is None
    assert report.result is not None
