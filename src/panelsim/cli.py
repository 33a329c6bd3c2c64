"""Command line entrypoint for panelsim.

Commands:

* ``run``: simulate one day (and optionally one instant) from a system config.
* ``sun``: sun position and event times for a coordinate and local time.
* ``presets``: list built-in panel and location presets.
* ``init``: write a starter system config.
"""
from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import typer

from panelsim.core.civil_time import format_time_in_timezone, is_valid_timezone, resolve_local_time
from panelsim.core.config import AUTO_TZ, ConfigError, load_system, write_system
from panelsim.core.debug import NullDebugCollector, build_debug_collector
from panelsim.core.models import ArrayOrientation, PVSystem, ValidationError
from panelsim.core.presets import (
    DEFAULT_LOCATION_PRESET,
    DEFAULT_PANEL_PRESET,
    PANEL_PRESETS,
    PRESET_LOCATIONS,
    get_location_preset,
    get_panel_preset,
    guess_timezone,
)
from panelsim.engine.simulate import simulate, simulate_day, sun_times_local
from panelsim.pv.power import total_system_loss_percent
from panelsim.solar.position import daylight_hours, is_during_twilight, optimal_azimuth, optimal_tilt, solar_position

__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Clear-sky PV panel power simulator CLI")


def _exit_with_error(msg: str) -> None:
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(code=1)


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        _exit_with_error("date must be YYYY-MM-DD")


def _check_hour(hour: Optional[float]) -> None:
    if hour is not None and not (0 <= hour < 24):
        _exit_with_error("hour must be in [0, 24)")


def _frame_records(frame: pd.DataFrame) -> list:
    """JSON-ready rows; non-finite numbers become null."""
    serializable = frame.reset_index().replace([np.inf, -np.inf], np.nan)
    return json.loads(serializable.to_json(orient="records", date_format="iso"))


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@app.command()
def run(
    config: Path = typer.Option(Path("etc/config.yaml"), exists=True, readable=True, help="System YAML/JSON file"),
    date: str = typer.Option(..., help="Target date (YYYY-MM-DD)"),
    hour: Optional[float] = typer.Option(None, help="Local hour (0-24) for an instant evaluation"),
    format: str = typer.Option("json", "--format", "-f", help="Output format: json or csv"),
    output: Optional[Path] = typer.Option(None, help="Output file path; defaults to results.<format>"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events (.json array or JSONL)"),
):
    """Simulate the daily power profile of the configured system."""

    try:
        system = load_system(config)
    except ConfigError as exc:
        _exit_with_error(str(exc))

    date_obj = _parse_date(date)
    _check_hour(hour)
    fmt = format.lower()
    if fmt not in {"json", "csv"}:
        _exit_with_error("format must be json or csv")

    if not is_valid_timezone(system.location.tz):
        typer.echo(f"Warning: unknown timezone '{system.location.tz}', local times fall back to UTC", err=True)

    debug_collector = build_debug_collector(debug) if debug else NullDebugCollector()
    output_path = output or Path(f"results.{fmt}")

    instant = None
    try:
        if hour is not None:
            result = simulate(system, date_obj, hour, debug=debug_collector)
            daily, instant = result.daily, result.instant
        else:
            daily = simulate_day(system, date_obj, debug=debug_collector)
    finally:
        if hasattr(debug_collector, "finalize"):
            debug_collector.finalize()

    frame = daily.to_frame()
    summary = daily.summary()
    if fmt == "json":
        payload: Dict[str, Any] = {
            "meta": {
                "location": system.location.id,
                "lat": system.location.lat,
                "lon": system.location.lon,
                "tz": system.location.tz,
                "panel_count": system.panel_count,
                "dc_capacity_w": system.dc_capacity_w,
                "system_loss_percent": total_system_loss_percent(system.losses),
                "generated_at": pd.Timestamp.now(tz="UTC").isoformat(),
            },
            "summary": summary,
            "hourly": _frame_records(frame),
        }
        if instant is not None:
            payload["instant"] = instant.to_dict()
            payload["instant"]["loss_breakdown"] = [
                {"name": row.name, "percentage": row.percentage, "description": row.description}
                for row in instant.loss_breakdown(system)
            ]
        output_path.write_text(json.dumps(payload, indent=2))
    else:
        frame.to_csv(output_path)

    typer.echo(
        f"{date_obj.isoformat()} {system.location.id}: {summary['energy_kwh']:.2f} kWh, "
        f"peak {summary['peak_kw']:.2f} kW at {summary['peak_hour']}:30"
    )
    if instant is not None:
        typer.echo(f"{instant.local_time}: {instant.ac_power_w:.0f} W")
    typer.echo(f"Wrote results to {output_path}")
    if debug:
        typer.echo(f"Debug events -> {debug}")


@app.command()
def sun(
    lat: float = typer.Option(..., help="Latitude in degrees"),
    lon: float = typer.Option(..., help="Longitude in degrees"),
    tz: str = typer.Option(AUTO_TZ, help="IANA timezone or 'auto'"),
    date: str = typer.Option(..., help="Local date (YYYY-MM-DD)"),
    hour: float = typer.Option(12.0, help="Local hour (0-24)"),
):
    """Print sun position and the day's event times as JSON."""

    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        _exit_with_error("lat must be in [-90, 90] and lon in [-180, 180]")
    date_obj = _parse_date(date)
    _check_hour(hour)
    zone = guess_timezone(lat, lon) if tz == AUTO_TZ else tz
    if not is_valid_timezone(zone):
        typer.echo(f"Warning: unknown timezone '{zone}', treating it as UTC", err=True)

    instant = resolve_local_time(date_obj, hour, zone)
    position = solar_position(instant, lat, lon)
    payload = {
        "timezone": zone,
        "utc": instant.isoformat(),
        "local_time": format_time_in_timezone(instant, zone, "full"),
        "elevation": position.elevation,
        "azimuth": position.azimuth,
        "zenith": position.zenith,
        "declination": position.declination,
        "hour_angle": position.hour_angle,
        "equation_of_time_min": position.equation_of_time_min,
        "solar_noon": _iso(position.solar_noon),
        "sunrise": _iso(position.sunrise),
        "sunset": _iso(position.sunset),
        "civil_twilight_start": _iso(position.civil_twilight_start),
        "civil_twilight_end": _iso(position.civil_twilight_end),
        "never_rises": position.never_rises,
        "never_sets": position.never_sets,
        "daylight_hours": daylight_hours(position),
        "is_night": position.is_night,
        "is_twilight": is_during_twilight(instant, position),
        "local_hours": sun_times_local(position, zone),
        "optimal_tilt": optimal_tilt(lat),
        "optimal_azimuth": optimal_azimuth(lat),
    }
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def presets():
    """List built-in panel and location presets."""

    typer.echo("Panels:")
    for preset in PANEL_PRESETS.values():
        spec = preset.spec
        typer.echo(
            f"- {preset.id}: {preset.name} ({preset.manufacturer} {preset.model}) "
            f"{spec.rated_power_w:.0f} W, eff {spec.efficiency:.1%}, {spec.temp_coefficient}%/°C, NOCT {spec.noct_c}"
        )
    typer.echo("Locations:")
    for preset in PRESET_LOCATIONS.values():
        loc = preset.location
        typer.echo(f"- {preset.id}: {preset.address} {loc.lat},{loc.lon} tz={loc.tz}")


@app.command()
def init(
    path: Path = typer.Argument(..., help="Path to write the system YAML/JSON"),
    panel_preset: str = typer.Option(DEFAULT_PANEL_PRESET, help="Panel preset id"),
    location_preset: str = typer.Option(DEFAULT_LOCATION_PRESET, help="Location preset id"),
    panel_count: int = typer.Option(10, help="Number of panels"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write a starter config facing the equator at the rule-of-thumb optimal tilt."""

    if path.exists() and not force:
        _exit_with_error(f"{path} exists; use --force to overwrite")
    try:
        location = get_location_preset(location_preset).location
        panel = get_panel_preset(panel_preset).spec
        system = PVSystem(
            location=location,
            panel=panel,
            orientation=ArrayOrientation(
                tilt_deg=round(optimal_tilt(location.lat), 1),
                azimuth_deg=optimal_azimuth(location.lat),
            ),
            panel_count=panel_count,
        )
    except KeyError as exc:
        _exit_with_error(str(exc.args[0]))
    except ValidationError as exc:
        _exit_with_error(str(exc))
    write_system(path, system)
    typer.echo(f"Saved system to {path}")


@app.callback(invoke_without_command=True)
def version_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main() -> None:  # pragma: no cover - thin wrapper for console_script
    app()


__all__ = ["app", "main"]


if __name__ == "__main__":  # pragma: no cover
    main()
