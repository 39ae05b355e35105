import json

import yaml
from typer.testing import CliRunner

from ciel.cli.main import app

runner = CliRunner()


def test_definitions_list():
    result = runner.invoke(app, ["definitions", "list"])
    assert result.exit_code == 0
    for sim_id in ("lorenz", "gravity", "wormhole", "dimensions"):
        assert sim_id in result.output


def test_definitions_show_json():
    result = runner.invoke(app, ["definitions", "show", "thomas", "--format", "json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["id"] == "thomas"
    assert data["derivative"] == "thomas"
    assert data["params"][0]["key"] == "b"


def test_definitions_show_unknown():
    result = runner.invoke(app, ["definitions", "show", "mandelbrot"])
    assert result.exit_code == 1


def test_run_writes_frame_and_params(tmp_path):
    out = tmp_path / "run"
    result = runner.invoke(app, [
        "run", "dimensions", "--frames", "3", "--width", "64", "--height", "48",
        "--seed", "1", "--param", "speedA=0.02", "--param", "bogus=1", "--output", str(out),
    ])
    assert result.exit_code == 0, result.output
    assert (out / "frame.png").exists()
    assert (out / "run.log").exists()
    saved = yaml.safe_load((out / "params.yml").read_text())
    assert saved["simulation"] == "dimensions"
    assert saved["frames_drawn"] == 3
    assert saved["params"] == {"speedA": 0.02, "speedB": 0.005, "perspective": 3.0}


def test_run_dry_run_writes_nothing(tmp_path):
    out = tmp_path / "dry"
    result = runner.invoke(app, ["run", "gravity", "--dry-run", "--output", str(out)])
    assert result.exit_code == 0
    assert "DRY RUN" in result.output
    assert not out.exists()


def test_run_rejects_bad_input(tmp_path):
    assert runner.invoke(app, ["run", "mandelbrot"]).exit_code == 1
    assert runner.invoke(app, ["run", "lorenz", "--param", "rho"]).exit_code == 1
    assert runner.invoke(app, ["run", "lorenz", "--seed", "abc"]).exit_code == 1
    assert runner.invoke(app, ["run", "lorenz", "--config", str(tmp_path / "missing.yml")]).exit_code == 1


def test_bifurcation_writes_csv_and_plot(tmp_path):
    cfg = tmp_path / "bif.yml"
    cfg.write_text(yaml.safe_dump({"warmup": 200, "collect": 300, "seed": 0}))
    result = runner.invoke(app, [
        "bifurcation", "thomas", "--steps", "4", "--config", str(cfg), "--output", str(tmp_path / "bif"),
    ])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "bif" / "bifurcation.csv").exists()
    assert (tmp_path / "bif" / "bifurcation.png").exists()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "Ciel version" in result.output
