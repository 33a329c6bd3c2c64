"""Clear-sky irradiance (simplified Ineichen-Perez).

References
----------
- Ineichen P., Perez R., "A new airmass independent formulation for the Linke
  turbidity coefficient", Solar Energy 73(3), 2002.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Callable, List

import pandas as pd

from panelsim.core.debug import DebugCollector, NullDebugCollector
from panelsim.solar import atmosphere

# Minimum diffuse share of horizontal extraterrestrial irradiance (Rayleigh floor).
MIN_DIFFUSE_FRACTION = 0.065


@dataclass(frozen=True)
class HorizontalIrradiance:
    ghi: float
    dni: float
    dhi: float
    extraterrestrial: float
    air_mass: float
    clearness_index: float


def clear_sky_irradiance(
    instant: Any,
    zenith_deg: float,
    linke_turbidity: float = 3.0,
    altitude_m: float = 0.0,
    debug: DebugCollector | None = None,
) -> HorizontalIrradiance:
    """Compute clear-sky GHI/DNI/DHI (W/m^2) for one instant.

    Parameters
    ----------
    instant : Timestamp-like
        Used for the day of year only (UTC calendar).
    zenith_deg : float
        Solar zenith angle. At or beyond 90 the result is all zero (night) with
        infinite air mass.
    linke_turbidity : float
        Atmospheric haze parameter, typically 2-5.
    altitude_m : float
        Site elevation in meters.

    The diffuse term is floored at ``MIN_DIFFUSE_FRACTION`` of the horizontal
    extraterrestrial irradiance and GHI is rebuilt from beam + diffuse so that
    ``ghi == dni * cos(zenith) + dhi`` always holds in daytime.
    """

    debug = debug or NullDebugCollector()
    extraterrestrial = atmosphere.extraterrestrial_irradiance(atmosphere.day_of_year(instant))

    if zenith_deg >= 90:
        return HorizontalIrradiance(
            ghi=0.0,
            dni=0.0,
            dhi=0.0,
            extraterrestrial=extraterrestrial,
            air_mass=math.inf,
            clearness_index=0.0,
        )

    cos_zenith = math.cos(math.radians(zenith_deg))
    am = atmosphere.air_mass(zenith_deg)
    fh1, fh2 = atmosphere.altitude_factors(altitude_m)

    b = 0.664 + 0.163 / fh1
    cg1 = 5.09e-5 * altitude_m + 0.868
    cg2 = 3.92e-5 * altitude_m + 0.0387

    dni = max(0.0, b * extraterrestrial * atmosphere.beam_attenuation(am, linke_turbidity, fh1))
    ghi_model = cg1 * extraterrestrial * cos_zenith * math.exp(-cg2 * am * (fh1 + fh2 * (linke_turbidity - 1)))

    horizontal_etr = extraterrestrial * cos_zenith
    min_dhi = MIN_DIFFUSE_FRACTION * horizontal_etr
    dhi = ghi_model - dni * cos_zenith
    if dhi < min_dhi:
        debug.emit(
            "clearsky.diffuse_floor",
            {"zenith": zenith_deg, "dhi_model": dhi, "dhi_floor": min_dhi, "linke_turbidity": linke_turbidity},
            ts=instant,
        )
        dhi = min_dhi
    dhi = max(0.0, dhi)

    ghi = max(0.0, dni * cos_zenith + dhi)
    kt = ghi / horizontal_etr if horizontal_etr > 0 else 0.0

    return HorizontalIrradiance(
        ghi=ghi,
        dni=dni,
        dhi=dhi,
        extraterrestrial=extraterrestrial,
        air_mass=am,
        clearness_index=min(1.0, max(0.0, kt)),
    )


def daily_clear_sky(
    date: dt.date,
    zenith_for: Callable[[pd.Timestamp], float],
    linke_turbidity: float = 3.0,
    altitude_m: float = 0.0,
) -> List[HorizontalIrradiance]:
    """Clear-sky irradiance at the 24 UTC mid-hours (hh:30) of ``date``."""
    start = pd.Timestamp(year=date.year, month=date.month, day=date.day, tz="UTC")
    results = []
    for hour in range(24):
        ts = start + pd.Timedelta(hours=hour, minutes=30)
        results.append(clear_sky_irradiance(ts, zenith_for(ts), linke_turbidity, altitude_m))
    return results


__all__ = ["MIN_DIFFUSE_FRACTION", "HorizontalIrradiance", "clear_sky_irradiance", "daily_clear_sky"]
