"""End-to-end recalculation: one instant plus the 24-sample daily profile."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from panelsim.core.civil_time import (
    DEFAULT_RESOLVER,
    Instant,
    TimezoneOffsetResolver,
    extract_local_hour,
    format_local_hour,
    resolve_local_time,
    to_local,
)
from panelsim.core.debug import DebugCollector, NullDebugCollector, ScopedDebugCollector
from panelsim.core.models import PVSystem
from panelsim.pv.power import (
    STC_IRRADIANCE_WM2,
    LossBreakdownRow,
    LossFactors,
    PanelPowerResult,
    loss_breakdown,
    panel_power,
)
from panelsim.solar.clear_sky import HorizontalIrradiance, clear_sky_irradiance
from panelsim.solar.irradiance import PlaneOfArrayIrradiance, poa_irradiance
from panelsim.solar.position import (
    SolarPosition,
    daylight_hours,
    is_during_twilight,
    is_orientation_optimal,
    solar_position,
)

HOURS_PER_DAY = 24
# Samples sit at the middle of each local clock hour.
SAMPLE_OFFSET_H = 0.5
NO_PRODUCTION_PEAK_HOUR = 12


@dataclass(frozen=True)
class HourlySample:
    hour: int
    instant: Instant
    local_time: pd.Timestamp
    position: SolarPosition
    irradiance: HorizontalIrradiance
    poa: PlaneOfArrayIrradiance
    cell_temp_c: float
    dc_power_w: float
    ac_power_w: float
    losses: LossFactors


@dataclass(frozen=True)
class DailyProfile:
    """Hourly samples plus day-level statistics.

    ``daily_energy_wh`` sums AC power over the samples, each standing for one hour.
    ``instant_power_w`` is filled in by :func:`simulate` for the requested moment.
    """

    date: dt.date
    hourly: Tuple[HourlySample, ...]
    peak_power_w: float
    peak_hour: int
    daily_energy_wh: float
    capacity_factor: float
    performance_ratio: float
    instant_power_w: float = 0.0

    def to_frame(self) -> pd.DataFrame:
        """Samples as a DataFrame indexed by local wall-clock time."""
        rows = []
        for s in self.hourly:
            rows.append(
                {
                    "local_time": s.local_time.tz_localize(None),
                    "hour": s.hour,
                    "utc": s.instant,
                    "elevation": s.position.elevation,
                    "azimuth": s.position.azimuth,
                    "zenith": s.position.zenith,
                    "ghi_wm2": s.irradiance.ghi,
                    "dni_wm2": s.irradiance.dni,
                    "dhi_wm2": s.irradiance.dhi,
                    "air_mass": s.irradiance.air_mass,
                    "poa_total": s.poa.total,
                    "poa_beam": s.poa.beam,
                    "poa_diffuse": s.poa.diffuse,
                    "poa_reflected": s.poa.reflected,
                    "poa_effective": s.poa.effective,
                    "aoi": s.poa.angle_of_incidence,
                    "temp_cell_c": s.cell_temp_c,
                    "pdc_w": s.dc_power_w,
                    "pac_w": s.ac_power_w,
                    "temp_factor": s.losses.temperature,
                    "iam_factor": s.losses.incidence_angle,
                    "system_factor": s.losses.system_total,
                    "clipping_pct": s.losses.inverter_clipping,
                }
            )
        return pd.DataFrame(rows).set_index("local_time")

    def summary(self) -> Dict[str, Any]:
        poa_total = sum(s.poa.total for s in self.hourly)
        return {
            "date": self.date.isoformat(),
            "energy_kwh": self.daily_energy_wh / 1000.0,
            "peak_kw": self.peak_power_w / 1000.0,
            "peak_hour": self.peak_hour,
            "poa_kwh_m2": poa_total / 1000.0,
            "temp_cell_max": max((s.cell_temp_c for s in self.hourly), default=None),
            "capacity_factor": self.capacity_factor,
            "performance_ratio": self.performance_ratio,
            "instant_power_w": self.instant_power_w,
        }


@dataclass(frozen=True)
class InstantResult:
    instant: Instant
    local_hour: float
    local_time: str
    position: SolarPosition
    irradiance: HorizontalIrradiance
    poa: PlaneOfArrayIrradiance
    power: PanelPowerResult
    is_night: bool
    is_twilight: bool
    is_optimal: bool

    @property
    def ac_power_w(self) -> float:
        return self.power.ac_power_w

    def loss_breakdown(self, system: PVSystem) -> List[LossBreakdownRow]:
        return loss_breakdown(self.power.losses, system.losses)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "utc": self.instant.isoformat(),
            "local_hour": self.local_hour,
            "local_time": self.local_time,
            "elevation": self.position.elevation,
            "azimuth": self.position.azimuth,
            "ghi_wm2": self.irradiance.ghi,
            "poa_total": self.poa.total,
            "poa_effective": self.poa.effective,
            "temp_cell_c": self.power.cell_temp_c,
            "pdc_w": self.power.dc_power_w,
            "pac_w": self.power.ac_power_w,
            "is_night": self.is_night,
            "is_twilight": self.is_twilight,
            "is_optimal": self.is_optimal,
        }


@dataclass(frozen=True)
class CalculationResult:
    instant: InstantResult
    daily: DailyProfile
    daylight_hours: float
    sun_times: Dict[str, Optional[float]]


def _evaluate(
    system: PVSystem,
    instant: Instant,
    debug: DebugCollector,
) -> Tuple[SolarPosition, HorizontalIrradiance, PlaneOfArrayIrradiance, PanelPowerResult]:
    loc = system.location
    position = solar_position(instant, loc.lat, loc.lon)
    irradiance = clear_sky_irradiance(
        instant,
        position.zenith,
        linke_turbidity=system.linke_turbidity,
        altitude_m=loc.altitude_m,
        debug=debug,
    )
    poa = poa_irradiance(
        irradiance,
        position.zenith,
        position.azimuth,
        system.orientation.tilt_deg,
        system.orientation.azimuth_deg,
        albedo=system.albedo,
        debug=debug,
    )
    power = panel_power(
        poa,
        system.panel,
        system.ambient_temp_c,
        panel_count=system.panel_count,
        losses=system.losses,
        inverter=system.inverter,
        wind_ms=system.wind_ms,
        debug=debug,
    )
    return position, irradiance, poa, power


def simulate_day(
    system: PVSystem,
    date: dt.date,
    resolver: TimezoneOffsetResolver | None = None,
    debug: DebugCollector | None = None,
) -> DailyProfile:
    """Evaluate the pipeline at the 24 local half-hours of ``date``."""

    resolver = resolver or DEFAULT_RESOLVER
    debug = debug or NullDebugCollector()
    loc = system.location

    samples: List[HourlySample] = []
    for hour in range(HOURS_PER_DAY):
        hour_debug = ScopedDebugCollector(debug, site=loc.id, hour=hour)
        instant = resolve_local_time(date, hour + SAMPLE_OFFSET_H, loc.tz, resolver=resolver, debug=hour_debug)
        position, irradiance, poa, power = _evaluate(system, instant, hour_debug)
        samples.append(
            HourlySample(
                hour=hour,
                instant=instant,
                local_time=to_local(instant, loc.tz, resolver),
                position=position,
                irradiance=irradiance,
                poa=poa,
                cell_temp_c=power.cell_temp_c,
                dc_power_w=power.dc_power_w,
                ac_power_w=power.ac_power_w,
                losses=power.losses,
            )
        )
        hour_debug.emit(
            "stage.hour",
            {
                "elevation": position.elevation,
                "ghi_wm2": irradiance.ghi,
                "poa_total": poa.total,
                "pdc_w": power.dc_power_w,
                "pac_w": power.ac_power_w,
            },
            ts=instant,
        )

    ac = np.array([s.ac_power_w for s in samples])
    # argmax returns the first of equal maxima.
    peak_idx = int(np.argmax(ac))
    if ac[peak_idx] > 0:
        peak_power, peak_hour = float(ac[peak_idx]), samples[peak_idx].hour
    else:
        peak_power, peak_hour = 0.0, NO_PRODUCTION_PEAK_HOUR

    energy = float(ac.sum())
    rated = system.dc_capacity_w
    capacity_factor = energy / (rated * HOURS_PER_DAY)
    theoretical = sum(s.poa.total for s in samples) / STC_IRRADIANCE_WM2 * rated
    performance_ratio = energy / theoretical if theoretical > 0 else 0.0

    profile = DailyProfile(
        date=date,
        hourly=tuple(samples),
        peak_power_w=peak_power,
        peak_hour=peak_hour,
        daily_energy_wh=energy,
        capacity_factor=capacity_factor,
        performance_ratio=performance_ratio,
    )
    debug.emit("profile.summary", profile.summary(), ts=samples[0].instant, site=loc.id)
    return profile


def simulate_instant(
    system: PVSystem,
    date: dt.date,
    local_hour: float,
    resolver: TimezoneOffsetResolver | None = None,
    debug: DebugCollector | None = None,
) -> InstantResult:
    """Evaluate the pipeline once at ``local_hour`` on ``date`` in the site's zone."""

    resolver = resolver or DEFAULT_RESOLVER
    debug = debug or NullDebugCollector()
    loc = system.location
    scoped = ScopedDebugCollector(debug, site=loc.id)

    instant = resolve_local_time(date, local_hour, loc.tz, resolver=resolver, debug=scoped)
    position, irradiance, poa, power = _evaluate(system, instant, scoped)
    return InstantResult(
        instant=instant,
        local_hour=float(local_hour),
        local_time=format_local_hour(local_hour),
        position=position,
        irradiance=irradiance,
        poa=poa,
        power=power,
        is_night=position.is_night,
        is_twilight=is_during_twilight(instant, position),
        is_optimal=is_orientation_optimal(system.orientation.tilt_deg, system.orientation.azimuth_deg, loc.lat),
    )


def sun_times_local(
    position: SolarPosition,
    timezone_id: str,
    resolver: TimezoneOffsetResolver | None = None,
) -> Dict[str, Optional[float]]:
    """Sunrise, sunset and solar noon as local hours; ``None`` for events that do not occur."""

    def _hour(instant: Optional[Instant]) -> Optional[float]:
        if instant is None:
            return None
        return extract_local_hour(instant, timezone_id, resolver)

    return {
        "sunrise": _hour(position.sunrise),
        "sunset": _hour(position.sunset),
        "solar_noon": _hour(position.solar_noon),
    }


def simulate(
    system: PVSystem,
    date: dt.date,
    local_hour: float,
    resolver: TimezoneOffsetResolver | None = None,
    debug: DebugCollector | None = None,
) -> CalculationResult:
    """Instant evaluation plus the daily profile it belongs to."""

    instant = simulate_instant(system, date, local_hour, resolver=resolver, debug=debug)
    daily = simulate_day(system, date, resolver=resolver, debug=debug)
    return CalculationResult(
        instant=instant,
        daily=replace(daily, instant_power_w=instant.ac_power_w),
        daylight_hours=daylight_hours(instant.position),
        sun_times=sun_times_local(instant.position, system.location.tz, resolver),
    )


__all__ = [
    "HourlySample",
    "DailyProfile",
    "InstantResult",
    "CalculationResult",
    "simulate_day",
    "simulate_instant",
    "simulate",
    "sun_times_local",
]
