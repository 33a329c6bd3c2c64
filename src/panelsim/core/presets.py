"""Built-in panel and location presets plus a coarse coordinate→timezone guess."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from panelsim.core.models import Location, PanelSpec


@dataclass(frozen=True)
class PanelPreset:
    id: str
    name: str
    manufacturer: str
    model: str
    spec: PanelSpec


@dataclass(frozen=True)
class LocationPreset:
    id: str
    address: str
    location: Location


def _panel(id: str, name: str, manufacturer: str, model: str, **spec) -> PanelPreset:
    return PanelPreset(id=id, name=name, manufacturer=manufacturer, model=model, spec=PanelSpec(**spec))


_PANELS = [
    _panel("generic-400", "Generic 400W", "Generic", "Mono-400",
           width_m=1.134, height_m=2.278, rated_power_w=400, efficiency=0.195, temp_coefficient=-0.35, noct_c=45),
    _panel("tesla-solar-panel", "Tesla Solar Panel", "Tesla", "425W",
           width_m=1.135, height_m=2.024, rated_power_w=425, efficiency=0.198, temp_coefficient=-0.30, noct_c=44),
    _panel("lg-neon-h", "LG NeON H", "LG", "LG380N1C-E6",
           width_m=1.024, height_m=2.024, rated_power_w=380, efficiency=0.218, temp_coefficient=-0.33, noct_c=44),
    _panel("sunpower-maxeon-3", "SunPower Maxeon 3", "SunPower", "SPR-MAX3-400",
           width_m=1.046, height_m=1.690, rated_power_w=400, efficiency=0.226, temp_coefficient=-0.29, noct_c=41.5),
    _panel("rec-alpha-pure", "REC Alpha Pure", "REC", "REC405AA",
           width_m=1.016, height_m=1.821, rated_power_w=405, efficiency=0.219, temp_coefficient=-0.26, noct_c=44),
    _panel("canadian-solar-hiku6", "Canadian Solar HiKu6", "Canadian Solar", "CS6R-410MS",
           width_m=1.134, height_m=1.762, rated_power_w=410, efficiency=0.205, temp_coefficient=-0.34, noct_c=45),
    _panel("jinko-tiger-neo", "Jinko Tiger Neo", "Jinko Solar", "JKM425N-54HL4-V",
           width_m=1.134, height_m=1.762, rated_power_w=425, efficiency=0.213, temp_coefficient=-0.30, noct_c=45),
]

PANEL_PRESETS: Dict[str, PanelPreset] = {p.id: p for p in _PANELS}
DEFAULT_PANEL_PRESET = "generic-400"


def _place(id: str, address: str, lat: float, lon: float, tz: str) -> LocationPreset:
    return LocationPreset(id=id, address=address, location=Location(id=id, lat=lat, lon=lon, tz=tz))


_LOCATIONS = [
    _place("san-francisco", "San Francisco, CA", 37.7749, -122.4194, "America/Los_Angeles"),
    _place("tokyo", "Tokyo, Japan", 35.6762, 139.6503, "Asia/Tokyo"),
    _place("london", "London, UK", 51.5074, -0.1278, "Europe/London"),
    _place("sydney", "Sydney, Australia", -33.8688, 151.2093, "Australia/Sydney"),
    _place("miami", "Miami, FL", 25.7617, -80.1918, "America/New_York"),
    _place("moscow", "Moscow, Russia", 55.7558, 37.6173, "Europe/Moscow"),
    _place("rio-de-janeiro", "Rio de Janeiro, Brazil", -22.9068, -43.1729, "America/Sao_Paulo"),
    _place("singapore", "Singapore", 1.3521, 103.8198, "Asia/Singapore"),
]

PRESET_LOCATIONS: Dict[str, LocationPreset] = {p.id: p for p in _LOCATIONS}
DEFAULT_LOCATION_PRESET = "san-francisco"


def get_panel_preset(preset_id: str) -> PanelPreset:
    try:
        return PANEL_PRESETS[preset_id]
    except KeyError as exc:
        raise KeyError(f"Unknown panel preset '{preset_id}'; choose from {sorted(PANEL_PRESETS)}") from exc


def get_location_preset(preset_id: str) -> LocationPreset:
    try:
        return PRESET_LOCATIONS[preset_id]
    except KeyError as exc:
        raise KeyError(f"Unknown location preset '{preset_id}'; choose from {sorted(PRESET_LOCATIONS)}") from exc


# (zone, min_lat, max_lat, min_lon, max_lon); first match wins.
_TIMEZONE_REGIONS: List[Tuple[str, float, float, float, float]] = [
    # Americas
    ("America/Los_Angeles", 32, 49, -125, -114),
    ("America/Denver", 31, 49, -114, -102),
    ("America/Chicago", 26, 49, -102, -87),
    ("America/New_York", 25, 47, -87, -67),
    ("America/Anchorage", 51, 72, -180, -130),
    ("Pacific/Honolulu", 18, 23, -161, -154),
    ("America/Phoenix", 31, 37, -115, -109),
    ("America/Sao_Paulo", -34, -15, -58, -35),
    ("America/Mexico_City", 14, 33, -118, -86),
    ("America/Buenos_Aires", -55, -22, -73, -53),
    # Europe
    ("Europe/London", 49, 61, -11, 2),
    ("Europe/Paris", 42, 51, -5, 8),
    ("Europe/Berlin", 47, 55, 5, 15),
    ("Europe/Rome", 36, 47, 6, 19),
    ("Europe/Madrid", 36, 44, -10, 5),
    ("Europe/Moscow", 45, 70, 27, 60),
    ("Europe/Istanbul", 36, 42, 26, 45),
    # Asia
    ("Asia/Tokyo", 24, 46, 123, 154),
    ("Asia/Shanghai", 18, 54, 73, 135),
    ("Asia/Kolkata", 8, 36, 68, 97),
    ("Asia/Dubai", 22, 27, 51, 57),
    ("Asia/Singapore", 1, 2, 103, 104),
    ("Asia/Seoul", 33, 43, 124, 132),
    ("Asia/Bangkok", 5, 21, 97, 106),
    ("Asia/Jakarta", -11, 6, 95, 141),
    # Oceania
    ("Australia/Sydney", -44, -28, 140, 154),
    ("Australia/Perth", -35, -14, 113, 129),
    ("Pacific/Auckland", -48, -34, 166, 179),
    # Africa
    ("Africa/Cairo", 22, 32, 24, 37),
    ("Africa/Johannesburg", -35, -22, 16, 33),
    ("Africa/Lagos", 4, 14, 2, 15),
]


def guess_timezone(lat: float, lon: float) -> str:
    """Best-effort IANA zone for a coordinate.

    Falls back to a whole-hour ``Etc/GMT`` zone from the longitude over oceans and
    unmapped land. ``Etc/GMT`` signs are inverted: UTC+9 is ``Etc/GMT-9``.
    """
    for zone, min_lat, max_lat, min_lon, max_lon in _TIMEZONE_REGIONS:
        if min_lat <= lat <= max_lat and min_lon <= lon <= max_lon:
            return zone

    # Half-hours round toward +inf.
    offset = math.floor(lon / 15.0 + 0.5)
    if offset == 0:
        return "UTC"
    return f"Etc/GMT{'-' if offset > 0 else '+'}{abs(offset)}"


__all__ = [
    "PanelPreset",
    "LocationPreset",
    "PANEL_PRESETS",
    "DEFAULT_PANEL_PRESET",
    "PRESET_LOCATIONS",
    "DEFAULT_LOCATION_PRESET",
    "get_panel_preset",
    "get_location_preset",
    "guess_timezone",
]
