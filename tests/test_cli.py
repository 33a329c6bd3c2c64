from pathlib import Path
import json

from typer.testing import CliRunner

from panelsim import cli
from panelsim.core.config import load_system


runner = CliRunner()


def _write_fixture(tmp_path: Path) -> Path:
    cfg = tmp_path / "system.yaml"
    cfg.write_text(
        "location:\n"
        "  preset: san-francisco\n"
        "panel:\n"
        "  preset: generic-400\n"
        "array:\n"
        "  tilt_deg: 35\n"
        "  azimuth_deg: 180\n"
        "  panel_count: 10\n"
    )
    return cfg


def test_help_exits_zero():
    res = runner.invoke(cli.app, ["--help"])
    assert res.exit_code == 0
    assert "run" in res.output
    assert "presets" in res.output


def test_version():
    res = runner.invoke(cli.app, ["--version"])
    assert res.exit_code == 0
    assert cli.__version__ in res.output


def test_run_json_with_instant(tmp_path):
    cfg = _write_fixture(tmp_path)
    out = tmp_path / "out.json"
    debug_path = tmp_path / "debug.jsonl"
    res = runner.invoke(
        cli.app,
        ["run", "--config", str(cfg), "--date", "2024-06-21", "--hour", "13", "--output", str(out), "--debug", str(debug_path)],
    )
    assert res.exit_code == 0, res.output
    assert "kWh" in res.output
    assert "Wrote results to" in res.output

    payload = json.loads(out.read_text())
    assert payload["meta"]["location"] == "san-francisco"
    assert payload["meta"]["dc_capacity_w"] == 4000
    assert len(payload["hourly"]) == 24
    assert payload["summary"]["energy_kwh"] > 0
    assert payload["summary"]["instant_power_w"] == payload["instant"]["pac_w"]
    assert payload["instant"]["local_time"] == "1:00 PM"
    assert payload["instant"]["loss_breakdown"]

    lines = debug_path.read_text().splitlines()
    assert lines
    assert any(json.loads(line)["stage"] == "profile.summary" for line in lines)


def test_run_csv(tmp_path):
    cfg = _write_fixture(tmp_path)
    out = tmp_path / "out.csv"
    res = runner.invoke(cli.app, ["run", "--config", str(cfg), "--date", "2024-06-21", "-f", "csv", "--output", str(out)])
    assert res.exit_code == 0, res.output
    rows = out.read_text().splitlines()
    assert rows[0].startswith("local_time,hour,utc")
    assert len(rows) == 25


def test_run_bad_date(tmp_path):
    cfg = _write_fixture(tmp_path)
    res = runner.invoke(cli.app, ["run", "--config", str(cfg), "--date", "2024-13-40"])
    assert res.exit_code == 1
    assert "Error:" in res.output


def test_run_bad_config(tmp_path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("array:\n  azimuth_deg: 180\n")
    res = runner.invoke(cli.app, ["run", "--config", str(cfg), "--date", "2024-06-21"])
    assert res.exit_code == 1
    assert "Error: Missing array fields" in res.output


def test_run_bad_hour(tmp_path):
    cfg = _write_fixture(tmp_path)
    res = runner.invoke(cli.app, ["run", "--config", str(cfg), "--date", "2024-06-21", "--hour", "25"])
    assert res.exit_code == 1
    assert "hour must be" in res.output


def test_sun_prints_json():
    res = runner.invoke(
        cli.app,
        ["sun", "--lat", "37.7749", "--lon", "-122.4194", "--tz", "America/Los_Angeles", "--date", "2024-06-21", "--hour", "13"],
    )
    assert res.exit_code == 0, res.output
    payload = json.loads(res.output)
    assert payload["timezone"] == "America/Los_Angeles"
    assert 65 <= payload["elevation"] <= 80
    assert payload["is_night"] is False
    assert 5 < payload["local_hours"]["sunrise"] < 7
    assert payload["optimal_azimuth"] == 180.0


def test_sun_rejects_bad_latitude():
    res = runner.invoke(cli.app, ["sun", "--lat", "95", "--lon", "0", "--date", "2024-06-21"])
    assert res.exit_code == 1
    assert "Error:" in res.output


def test_presets_lists_panels_and_locations():
    res = runner.invoke(cli.app, ["presets"])
    assert res.exit_code == 0
    assert "Panels:" in res.output
    assert "generic-400" in res.output
    assert "Locations:" in res.output
    assert "singapore" in res.output


def test_init_writes_loadable_config(tmp_path):
    path = tmp_path / "starter.yaml"
    res = runner.invoke(cli.app, ["init", str(path), "--location-preset", "sydney", "--panel-count", "8"])
    assert res.exit_code == 0, res.output
    assert "Saved system to" in res.output

    system = load_system(path)
    assert system.panel_count == 8
    assert system.location.tz == "Australia/Sydney"
    assert system.orientation.azimuth_deg == 0.0

    again = runner.invoke(cli.app, ["init", str(path)])
    assert again.exit_code == 1
    assert "use --force" in again.output

    forced = runner.invoke(cli.app, ["init", str(path), "--force"])
    assert forced.exit_code == 0


def test_init_unknown_preset(tmp_path):
    res = runner.invoke(cli.app, ["init", str(tmp_path / "x.yaml"), "--panel-preset", "nope"])
    assert res.exit_code == 1
    assert "Unknown panel preset" in res.output


class RecordingDebugCollector:
    def __init__(self):
        self.finalized = False

    def emit(self, stage, payload, *, ts, site=None, hour=None):
        pass

    def finalize(self):
        self.finalized = True


def test_run_finalizes_debug_writer_when_simulation_fails(monkeypatch, tmp_path):
    cfg = _write_fixture(tmp_path)
    collector = RecordingDebugCollector()

    def _boom(*args, **kwargs):
        raise RuntimeError("simulation failed")

    monkeypatch.setattr(cli, "build_debug_collector", lambda path: collector)
    monkeypatch.setattr(cli, "simulate_day", _boom)
    res = runner.invoke(
        cli.app,
        ["run", "--config", str(cfg), "--date", "2024-06-21", "--output", str(tmp_path / "out.json"), "--debug", str(tmp_path / "d.jsonl")],
    )
    assert res.exit_code != 0
    assert isinstance(res.exception, RuntimeError)
    assert collector.finalized
    assert not (tmp_path / "out.json").exists()
