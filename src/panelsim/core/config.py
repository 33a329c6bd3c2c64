"""Configuration loader for PV systems.

Supports YAML and JSON files describing one system: location, panel, array,
losses, inverter and environment sections. Presets may stand in for the
location and panel sections.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

try:
    import yaml
except ModuleNotFoundError as exc:  # pragma: no cover
    raise ImportError("PyYAML is required to load YAML configs") from exc

from .models import (
    ArrayOrientation,
    InverterSpec,
    Location,
    PanelSpec,
    PVSystem,
    SystemLosses,
)
from .presets import DEFAULT_LOCATION_PRESET, DEFAULT_PANEL_PRESET, get_location_preset, get_panel_preset, guess_timezone


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed into domain models."""


AUTO_TZ = "auto"

_SECTIONS = {"location", "panel", "array", "losses", "inverter", "environment"}
_DEF_REQUIRED_LOCATION_KEYS = {"lat", "lon"}
_OPTIONAL_LOCATION_KEYS = {"id", "tz", "elevation_m"}
_DEF_REQUIRED_PANEL_KEYS = {"width_m", "height_m", "rated_power_w", "efficiency", "temp_coefficient"}
_OPTIONAL_PANEL_KEYS = {"noct_c", "bifacial", "bifaciality_factor"}
_LOSS_KEYS = set(SystemLosses().as_dict())
_INVERTER_KEYS = {"efficiency", "dc_ac_ratio", "ac_capacity_w"}
_ENVIRONMENT_KEYS = {"ambient_temp_c", "wind_ms", "albedo", "linke_turbidity"}


def _load_raw(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text) or {}
        if path.suffix.lower() == ".json":
            return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    raise ConfigError(f"Unsupported config extension: {path.suffix}")


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def _reject_unknown(section: str, raw: Dict[str, Any], allowed: set) -> None:
    unknown = set(raw) - allowed
    if unknown:
        raise ConfigError(f"Unknown {section} fields: {sorted(unknown)}")


def _parse_location(raw: Dict[str, Any]) -> Location:
    if "preset" in raw:
        _reject_unknown("location", raw, {"preset"})
        try:
            return get_location_preset(raw["preset"]).location
        except KeyError as exc:
            raise ConfigError(str(exc.args[0])) from exc
    missing = _DEF_REQUIRED_LOCATION_KEYS - raw.keys()
    if missing:
        raise ConfigError(f"Missing location fields: {sorted(missing)}")
    _reject_unknown("location", raw, _DEF_REQUIRED_LOCATION_KEYS | _OPTIONAL_LOCATION_KEYS)
    try:
        lat = float(raw["lat"])
        lon = float(raw["lon"])
        tz = raw.get("tz") or AUTO_TZ
        if tz == AUTO_TZ:
            tz = guess_timezone(lat, lon)
        return Location(
            id=str(raw.get("id", "site")),
            lat=lat,
            lon=lon,
            tz=tz,
            elevation_m=float(raw["elevation_m"]) if raw.get("elevation_m") is not None else None,
        )
    except (TypeError, ValueError) as exc:
        # ValidationError is a ValueError too.
        raise ConfigError(f"Invalid location: {exc}") from exc


def _parse_panel(raw: Dict[str, Any]) -> PanelSpec:
    if "preset" in raw:
        _reject_unknown("panel", raw, {"preset"})
        try:
            return get_panel_preset(raw["preset"]).spec
        except KeyError as exc:
            raise ConfigError(str(exc.args[0])) from exc
    if not raw:
        return get_panel_preset(DEFAULT_PANEL_PRESET).spec
    missing = _DEF_REQUIRED_PANEL_KEYS - raw.keys()
    if missing:
        raise ConfigError(f"Missing panel fields: {sorted(missing)}")
    _reject_unknown("panel", raw, _DEF_REQUIRED_PANEL_KEYS | _OPTIONAL_PANEL_KEYS)
    bifacial = raw.get("bifacial", False)
    if not isinstance(bifacial, bool):
        raise ConfigError(f"Invalid panel: bifacial must be true or false, got {bifacial!r}")
    try:
        return PanelSpec(
            width_m=float(raw["width_m"]),
            height_m=float(raw["height_m"]),
            rated_power_w=float(raw["rated_power_w"]),
            efficiency=float(raw["efficiency"]),
            temp_coefficient=float(raw["temp_coefficient"]),
            noct_c=float(raw.get("noct_c", 45.0)),
            bifacial=bifacial,
            bifaciality_factor=float(raw["bifaciality_factor"]) if raw.get("bifaciality_factor") is not None else None,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid panel: {exc}") from exc


def _parse_losses(raw: Dict[str, Any]) -> SystemLosses:
    _reject_unknown("losses", raw, _LOSS_KEYS)
    try:
        return SystemLosses(**{k: float(v) for k, v in raw.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid losses: {exc}") from exc


def _parse_inverter(raw: Dict[str, Any]) -> InverterSpec:
    _reject_unknown("inverter", raw, _INVERTER_KEYS)
    try:
        return InverterSpec(**{k: float(v) for k, v in raw.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid inverter: {exc}") from exc


def parse_system(raw: Dict[str, Any]) -> PVSystem:
    """Build a :class:`PVSystem` from an already-decoded mapping."""
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    _reject_unknown("top-level", raw, _SECTIONS)
    location_raw = _section(raw, "location") or {"preset": DEFAULT_LOCATION_PRESET}
    array_raw = _section(raw, "array")
    if "tilt_deg" not in array_raw:
        raise ConfigError("Missing array fields: ['tilt_deg']")
    _reject_unknown("array", array_raw, {"tilt_deg", "azimuth_deg", "panel_count"})
    environment = _section(raw, "environment")
    _reject_unknown("environment", environment, _ENVIRONMENT_KEYS)

    location = _parse_location(location_raw)
    panel = _parse_panel(_section(raw, "panel"))
    losses = _parse_losses(_section(raw, "losses"))
    inverter = _parse_inverter(_section(raw, "inverter"))
    try:
        orientation = ArrayOrientation(
            tilt_deg=float(array_raw["tilt_deg"]),
            azimuth_deg=float(array_raw.get("azimuth_deg", 180.0)),
        )
        return PVSystem(
            location=location,
            panel=panel,
            orientation=orientation,
            panel_count=array_raw.get("panel_count", 1),
            losses=losses,
            inverter=inverter,
            **{k: float(v) for k, v in environment.items()},
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid system: {exc}") from exc


def load_system(path: str | Path) -> PVSystem:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    return parse_system(_load_raw(path))


def system_to_dict(system: PVSystem) -> Dict[str, Any]:
    """Serialize a system to the same schema :func:`parse_system` reads."""
    loc = system.location
    panel = system.panel
    location: Dict[str, Any] = {"id": loc.id, "lat": loc.lat, "lon": loc.lon, "tz": loc.tz}
    if loc.elevation_m is not None:
        location["elevation_m"] = loc.elevation_m
    panel_raw: Dict[str, Any] = {
        "width_m": panel.width_m,
        "height_m": panel.height_m,
        "rated_power_w": panel.rated_power_w,
        "efficiency": panel.efficiency,
        "temp_coefficient": panel.temp_coefficient,
        "noct_c": panel.noct_c,
    }
    if panel.bifacial:
        panel_raw["bifacial"] = True
    if panel.bifaciality_factor is not None:
        panel_raw["bifaciality_factor"] = panel.bifaciality_factor
    return {
        "location": location,
        "panel": panel_raw,
        "array": {
            "tilt_deg": system.orientation.tilt_deg,
            "azimuth_deg": system.orientation.azimuth_deg,
            "panel_count": system.panel_count,
        },
        "losses": system.losses.as_dict(),
        "inverter": {
            "efficiency": system.inverter.efficiency,
            "dc_ac_ratio": system.inverter.dc_ac_ratio,
            "ac_capacity_w": system.inverter.ac_capacity_w,
        },
        "environment": {
            "ambient_temp_c": system.ambient_temp_c,
            "wind_ms": system.wind_ms,
            "albedo": system.albedo,
            "linke_turbidity": system.linke_turbidity,
        },
    }


def write_system(path: str | Path, system: PVSystem) -> Path:
    """Write ``system`` as YAML (or JSON for a ``.json`` path)."""
    path = Path(path)
    data = system_to_dict(system)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(data, indent=2))
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


__all__ = [
    "AUTO_TZ",
    "ConfigError",
    "parse_system",
    "load_system",
    "system_to_dict",
    "write_system",
]
