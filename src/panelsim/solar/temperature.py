"""Cell temperature from the NOCT rating with a simple wind correction."""
from __future__ import annotations

from panelsim.core.debug import DebugCollector, NullDebugCollector

NOCT_IRRADIANCE_WM2 = 800.0
NOCT_AMBIENT_C = 20.0
_WIND_COOLING_PER_MS = 0.1
_WIND_COOLING_CAP_MS = 5.0


def wind_factor(wind_ms: float) -> float:
    """Scale on the NOCT temperature rise; 1.0 at the 1 m/s NOCT wind speed.

    Each m/s above 1 removes 10% of the rise (capped at 5 m/s extra). Calm air
    below 1 m/s raises it slightly.
    """
    return 1.0 - _WIND_COOLING_PER_MS * min(wind_ms - 1.0, _WIND_COOLING_CAP_MS)


def cell_temperature(
    ambient_c: float,
    poa_wm2: float,
    noct_c: float = 45.0,
    wind_ms: float = 1.0,
    debug: DebugCollector | None = None,
) -> float:
    """Estimate cell temperature (deg C) from ambient, POA irradiance and NOCT.

    ``T = ambient + (NOCT - 20) * (POA / 800) * wind_factor``. Without irradiance
    the cell sits at ambient.
    """

    debug = debug or NullDebugCollector()
    if poa_wm2 <= 0:
        return float(ambient_c)

    rise = (noct_c - NOCT_AMBIENT_C) * (poa_wm2 / NOCT_IRRADIANCE_WM2) * wind_factor(wind_ms)
    temp_cell = ambient_c + rise
    debug.emit(
        "temp_cell",
        {"ambient_c": ambient_c, "poa_wm2": poa_wm2, "noct_c": noct_c, "wind_ms": wind_ms, "temp_cell_c": temp_cell},
        ts=None,
    )
    return float(temp_cell)


__all__ = ["NOCT_IRRADIANCE_WM2", "NOCT_AMBIENT_C", "wind_factor", "cell_temperature"]
