"""Solar position (NOAA / Meeus formulation) with sunrise, sunset and twilight.

All angles are degrees at the API boundary and radians internally. Event times
are UTC Timestamps on the UTC calendar day of the requested instant. Polar day
and polar night are represented explicitly: the corresponding event times are
``None`` and ``never_sets`` / ``never_rises`` flag which case applies.

References
----------
- NOAA Solar Calculator, https://gml.noaa.gov/grad/solcalc/calcdetails.html
- Meeus J., "Astronomical Algorithms", 1991.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

from panelsim.core.civil_time import Instant, as_instant

SUNRISE_ZENITH_DEG = 90.833
CIVIL_TWILIGHT_ZENITH_DEG = 96.0

_MINUTE = pd.Timedelta(minutes=1)


@dataclass(frozen=True)
class HourAngleSolution:
    """Hour angle at which the sun crosses a target zenith.

    ``hour_angle_deg`` is 0 when the zenith is never reached (sun stays below)
    and 180 when the sun never drops past it.
    """

    hour_angle_deg: float
    never_reached: bool = False
    always_beyond: bool = False


@dataclass(frozen=True)
class SolarPosition:
    elevation: float
    azimuth: float
    zenith: float
    declination: float
    hour_angle: float
    equation_of_time_min: float
    solar_noon: Instant
    sunrise: Optional[Instant]
    sunset: Optional[Instant]
    civil_twilight_start: Optional[Instant]
    civil_twilight_end: Optional[Instant]
    never_rises: bool = False
    never_sets: bool = False

    @property
    def is_night(self) -> bool:
        return self.elevation < 0

    @property
    def below_horizon(self) -> bool:
        return self.is_night


def julian_day(instant: Any) -> float:
    return float(as_instant(instant).to_julian_date())


def julian_century(jd: float) -> float:
    return (jd - 2451545.0) / 36525.0


def _sun_terms(t: float) -> tuple[float, float]:
    """Declination (deg) and equation of time (minutes) for Julian century ``t``."""
    l0 = (280.46646 + t * (36000.76983 + 0.0003032 * t)) % 360.0
    m = 357.52911 + t * (35999.05029 - 0.0001537 * t)
    m_rad = math.radians(m)
    e = 0.016708634 - t * (0.000042037 + 0.0000001267 * t)

    center = (
        math.sin(m_rad) * (1.914602 - t * (0.004817 + 0.000014 * t))
        + math.sin(2 * m_rad) * (0.019993 - 0.000101 * t)
        + math.sin(3 * m_rad) * 0.000289
    )
    true_long = l0 + center
    omega = 125.04 - 1934.136 * t
    apparent_long = true_long - 0.00569 - 0.00478 * math.sin(math.radians(omega))

    mean_obliq = 23 + (26 + (21.448 - t * (46.8150 + t * (0.00059 - t * 0.001813))) / 60) / 60
    obliq_corr = math.radians(mean_obliq + 0.00256 * math.cos(math.radians(omega)))

    declination = math.degrees(math.asin(math.sin(obliq_corr) * math.sin(math.radians(apparent_long))))

    y = math.tan(obliq_corr / 2) ** 2
    l0_rad = math.radians(l0)
    eq_time = 4 * math.degrees(
        y * math.sin(2 * l0_rad)
        - 2 * e * math.sin(m_rad)
        + 4 * e * y * math.sin(m_rad) * math.cos(2 * l0_rad)
        - 0.5 * y * y * math.sin(4 * l0_rad)
        - 1.25 * e * e * math.sin(2 * m_rad)
    )
    return declination, eq_time


def hour_angle_for_zenith(latitude: float, declination: float, zenith_deg: float) -> HourAngleSolution:
    """Solve ``cos(HA) = cos(z)/(cos(lat)cos(dec)) - tan(lat)tan(dec)``."""
    lat = math.radians(latitude)
    dec = math.radians(declination)
    denom = math.cos(lat) * math.cos(dec)
    if abs(denom) < 1e-12:
        # At the poles the sun circles at constant elevation all day.
        elevation = 90.0 - zenith_deg
        above = (declination if latitude > 0 else -declination) > elevation
        return HourAngleSolution(180.0, always_beyond=True) if above else HourAngleSolution(0.0, never_reached=True)

    cos_ha = math.cos(math.radians(zenith_deg)) / denom - math.tan(lat) * math.tan(dec)
    if cos_ha > 1:
        return HourAngleSolution(0.0, never_reached=True)
    if cos_ha < -1:
        return HourAngleSolution(180.0, always_beyond=True)
    return HourAngleSolution(math.degrees(math.acos(cos_ha)))


def _azimuth(latitude: float, declination: float, zenith: float, hour_angle: float) -> float:
    sin_zenith = math.sin(math.radians(zenith))
    if abs(sin_zenith) < 0.0001:
        return 180.0 if latitude >= 0 else 0.0
    lat = math.radians(latitude)
    cos_az = (math.sin(lat) * math.cos(math.radians(zenith)) - math.sin(math.radians(declination))) / (
        math.cos(lat) * sin_zenith
    )
    angle = math.degrees(math.acos(max(-1.0, min(1.0, cos_az))))
    if hour_angle > 0:
        return (angle + 180.0) % 360.0
    return (540.0 - angle) % 360.0


def solar_position(instant: Any, latitude: float, longitude: float) -> SolarPosition:
    """Sun position and the day's event times for a UTC instant and coordinate."""
    utc = as_instant(instant)
    t = julian_century(julian_day(utc))
    declination, eq_time = _sun_terms(t)

    utc_minutes = utc.hour * 60 + utc.minute + (utc.second + utc.microsecond / 1e6) / 60
    true_solar_time = (utc_minutes + eq_time + 4 * longitude) % 1440.0
    hour_angle = true_solar_time / 4 - 180.0
    if hour_angle < -180:
        hour_angle += 360.0

    lat = math.radians(latitude)
    dec = math.radians(declination)
    cos_zenith = math.sin(lat) * math.sin(dec) + math.cos(lat) * math.cos(dec) * math.cos(math.radians(hour_angle))
    zenith = math.degrees(math.acos(max(-1.0, min(1.0, cos_zenith))))
    elevation = 90.0 - zenith
    azimuth = _azimuth(latitude, declination, zenith, hour_angle) % 360.0

    day_start = utc.normalize()
    noon_minutes = 720 - 4 * longitude - eq_time
    solar_noon = day_start + noon_minutes * _MINUTE

    rise = hour_angle_for_zenith(latitude, declination, SUNRISE_ZENITH_DEG)
    twilight = hour_angle_for_zenith(latitude, declination, CIVIL_TWILIGHT_ZENITH_DEG)

    def _event(solution: HourAngleSolution, sign: int) -> Optional[Instant]:
        if solution.never_reached or solution.always_beyond:
            return None
        return solar_noon + sign * 4 * solution.hour_angle_deg * _MINUTE

    return SolarPosition(
        elevation=elevation,
        azimuth=azimuth,
        zenith=zenith,
        declination=declination,
        hour_angle=hour_angle,
        equation_of_time_min=eq_time,
        solar_noon=solar_noon,
        sunrise=_event(rise, -1),
        sunset=_event(rise, +1),
        civil_twilight_start=_event(twilight, -1),
        civil_twilight_end=_event(twilight, +1),
        never_rises=rise.never_reached,
        never_sets=rise.always_beyond,
    )


def daylight_hours(position: SolarPosition) -> float:
    """Hours between sunrise and sunset; 24 under midnight sun, 0 in polar night."""
    if position.never_sets:
        return 24.0
    if position.never_rises or position.sunrise is None or position.sunset is None:
        return 0.0
    return (position.sunset - position.sunrise).total_seconds() / 3600.0


def is_during_twilight(instant: Any, position: SolarPosition) -> bool:
    """True between civil dawn and sunrise or between sunset and civil dusk."""
    if position.sunrise is None or position.sunset is None:
        return False
    ts = as_instant(instant)
    start = position.civil_twilight_start
    end = position.civil_twilight_end
    # Missing twilight bounds with a real sunrise means the sun never reaches -6 deg.
    if start is None or end is None:
        return ts < position.sunrise or ts > position.sunset
    return (start <= ts < position.sunrise) or (position.sunset < ts <= end)


def optimal_tilt(latitude: float) -> float:
    """Rule-of-thumb annual optimum tilt: ``|lat| * 0.87 + 3.1``, clamped to [0, 90]."""
    return max(0.0, min(90.0, abs(latitude) * 0.87 + 3.1))


def optimal_azimuth(latitude: float) -> float:
    return 180.0 if latitude >= 0 else 0.0


def is_orientation_optimal(tilt_deg: float, azimuth_deg: float, latitude: float, tolerance: float = 1.0) -> bool:
    tilt_diff = abs(tilt_deg - optimal_tilt(latitude))
    raw = abs(azimuth_deg - optimal_azimuth(latitude))
    azimuth_diff = min(raw, 360.0 - raw)
    return tilt_diff <= tolerance and azimuth_diff <= tolerance


def season(date: dt.date, latitude: float) -> str:
    """Meteorological season for the hemisphere of ``latitude``."""
    month = date.month
    northern = latitude >= 0
    if 3 <= month <= 5:
        return "spring" if northern else "fall"
    if 6 <= month <= 8:
        return "summer" if northern else "winter"
    if 9 <= month <= 11:
        return "fall" if northern else "spring"
    return "winter" if northern else "summer"


def seasonal_optimal_tilt(latitude: float, season_name: str) -> float:
    abs_lat = abs(latitude)
    if season_name == "summer":
        return max(0.0, abs_lat - 15.0)
    if season_name == "winter":
        return min(90.0, abs_lat + 15.0)
    return abs_lat


__all__ = [
    "SUNRISE_ZENITH_DEG",
    "CIVIL_TWILIGHT_ZENITH_DEG",
    "HourAngleSolution",
    "SolarPosition",
    "julian_day",
    "julian_century",
    "hour_angle_for_zenith",
    "solar_position",
    "daylight_hours",
    "is_during_twilight",
    "optimal_tilt",
    "optimal_azimuth",
    "is_orientation_optimal",
    "season",
    "seasonal_optimal_tilt",
]
