"""Atmospheric helpers for clear-sky irradiance modelling.

Scalar functions only; air mass and the Earth-Sun distance correction delegate
to pvlib, which implements the same Kasten-Young and Spencer formulas.
"""
from __future__ import annotations

import math
from typing import Any

import pandas as pd
import pvlib

SOLAR_CONSTANT_WM2 = 1361.0

_LINKE_TURBIDITY_TABLE = {
    "low": {"clean": 2.0, "average": 2.5, "polluted": 3.5},
    "medium": {"clean": 2.5, "average": 3.0, "polluted": 4.0},
    "high": {"clean": 3.0, "average": 4.0, "polluted": 5.0},
}


def air_mass(zenith_deg: float) -> float:
    """Relative optical air mass (Kasten-Young 1989), floored at 1.

    Returns ``inf`` once the sun is at or below the horizon.
    """
    if zenith_deg >= 90:
        return math.inf
    am = float(pvlib.atmosphere.get_relative_airmass(zenith_deg, model="kastenyoung1989"))
    return max(1.0, am)


def beam_transmittance(air_mass_value: float, linke_turbidity: float = 3.0) -> float:
    """Simplified Beer-Lambert beam transmittance in [0, 1]."""
    if not math.isfinite(air_mass_value):
        return 0.0
    b = 0.664 + 0.163 / linke_turbidity
    transmittance = math.exp(-b * air_mass_value * (linke_turbidity / 10.0))
    return min(1.0, max(0.0, transmittance))


def beam_attenuation(air_mass_value: float, linke_turbidity: float, fh1: float) -> float:
    """Exponential beam attenuation of the simplified Ineichen-Perez model."""
    if not math.isfinite(air_mass_value):
        return 0.0
    return math.exp(-0.09 * air_mass_value * linke_turbidity * fh1)


def altitude_factors(altitude_m: float) -> tuple[float, float]:
    """Altitude scale factors ``(fh1, fh2)`` for the beam and diffuse terms."""
    return math.exp(-altitude_m / 8000.0), math.exp(-altitude_m / 1250.0)


def diffuse_fraction(clearness_index: float) -> float:
    """Erbs diffuse fraction for a clearness index (clamped to [0, 1])."""
    kt = min(1.0, max(0.0, clearness_index))
    if kt <= 0.22:
        return 1.0 - 0.09 * kt
    if kt <= 0.80:
        return 0.9511 - 0.1604 * kt + 4.388 * kt**2 - 16.638 * kt**3 + 12.336 * kt**4
    return 0.165


def extraterrestrial_irradiance(day_of_year_value: int) -> float:
    """Normal-incidence extraterrestrial irradiance (W/m^2) for a day of year."""
    return float(
        pvlib.irradiance.get_extra_radiation(
            day_of_year_value, solar_constant=SOLAR_CONSTANT_WM2, method="spencer"
        )
    )


def day_of_year(value: Any) -> int:
    """Day of year (1-366) of the UTC calendar date of ``value``."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return int(ts.dayofyear)


def estimate_linke_turbidity(humidity: str, aerosols: str) -> float:
    """Typical Linke turbidity for qualitative humidity/aerosol conditions."""
    try:
        return _LINKE_TURBIDITY_TABLE[humidity.lower()][aerosols.lower()]
    except KeyError as exc:
        raise ValueError(
            f"humidity must be one of {sorted(_LINKE_TURBIDITY_TABLE)} and aerosols one of "
            f"{sorted(_LINKE_TURBIDITY_TABLE['low'])}"
        ) from exc


__all__ = [
    "SOLAR_CONSTANT_WM2",
    "air_mass",
    "beam_transmittance",
    "beam_attenuation",
    "altitude_factors",
    "diffuse_fraction",
    "extraterrestrial_irradiance",
    "day_of_year",
    "estimate_linke_turbidity",
]
