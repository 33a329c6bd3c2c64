"""PV power pipeline: temperature derating, system losses, DC power and inverter.

Each stage is a scalar function over one operating point. ``panel_power`` chains
them for an array of identical panels and reports the per-stage loss factors
used by the daily profile and the loss breakdown.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List

from panelsim.core.debug import DebugCollector, NullDebugCollector
from panelsim.core.models import (
    DEFAULT_INVERTER,
    DEFAULT_SYSTEM_LOSSES,
    InverterSpec,
    PanelSpec,
    SystemLosses,
)
from panelsim.solar.irradiance import PlaneOfArrayIrradiance
from panelsim.solar.temperature import cell_temperature

STC_IRRADIANCE_WM2 = 1000.0
STC_TEMPERATURE_C = 25.0
TEMP_DERATING_MIN = 0.5
TEMP_DERATING_MAX = 1.15


@dataclass(frozen=True)
class LossFactors:
    """Multiplicative factors (1 = lossless) plus clipping as % of DC input."""

    temperature: float
    incidence_angle: float
    spectral: float
    system_total: float
    inverter_clipping: float = 0.0


@dataclass(frozen=True)
class DcResult:
    dc_power_w: float
    cell_temp_c: float
    losses: LossFactors


@dataclass(frozen=True)
class InverterResult:
    ac_power_w: float
    clipping_loss_w: float
    efficiency: float


@dataclass(frozen=True)
class PanelPowerResult:
    ac_power_w: float
    dc_power_w: float
    cell_temp_c: float
    losses: LossFactors


@dataclass(frozen=True)
class LossBreakdownRow:
    name: str
    percentage: float
    description: str


def temperature_derating(cell_temp_c: float, temp_coefficient: float, stc_temp_c: float = STC_TEMPERATURE_C) -> float:
    """``1 + (coef/100) * (T - 25)`` clamped to [0.5, 1.15]; above 1 in the cold."""
    derating = 1.0 + (temp_coefficient / 100.0) * (cell_temp_c - stc_temp_c)
    return max(TEMP_DERATING_MIN, min(TEMP_DERATING_MAX, derating))


def system_loss_factor(losses: SystemLosses) -> float:
    factor = 1.0
    for value in losses.as_dict().values():
        factor *= 1.0 - value
    return factor


def total_system_loss_percent(losses: SystemLosses) -> float:
    return (1.0 - system_loss_factor(losses)) * 100.0


def dc_power(
    poa: PlaneOfArrayIrradiance,
    panel: PanelSpec,
    ambient_c: float,
    losses: SystemLosses = DEFAULT_SYSTEM_LOSSES,
    wind_ms: float = 1.0,
) -> DcResult:
    """DC output of a single panel.

    Without effective irradiance the panel produces nothing, sits at ambient and
    reports unity temperature/IAM factors alongside the configured system factor.
    Cell temperature is driven by the pre-IAM POA total.
    """

    system_factor = system_loss_factor(losses)
    if poa.effective <= 0:
        return DcResult(
            dc_power_w=0.0,
            cell_temp_c=float(ambient_c),
            losses=LossFactors(temperature=1.0, incidence_angle=1.0, spectral=1.0, system_total=system_factor),
        )

    temp_cell = cell_temperature(ambient_c, poa.total, panel.noct_c, wind_ms)
    temp_factor = temperature_derating(temp_cell, panel.temp_coefficient)
    iam_factor = poa.effective / (poa.total or 1.0)
    power = panel.rated_power_w * (poa.effective / STC_IRRADIANCE_WM2) * temp_factor * system_factor

    return DcResult(
        dc_power_w=max(0.0, power),
        cell_temp_c=temp_cell,
        losses=LossFactors(
            temperature=temp_factor,
            incidence_angle=iam_factor,
            spectral=1.0,
            system_total=system_factor,
        ),
    )


def part_load_multiplier(load_ratio: float) -> float:
    """Efficiency multiplier below 20% load; 1.0 at and above it."""
    if load_ratio < 0.1:
        return 0.85 + load_ratio * 1.5
    if load_ratio < 0.2:
        return 0.95 + load_ratio * 0.25
    return 1.0


def inverter_output(
    dc_power_w: float,
    inverter: InverterSpec,
    dc_capacity_w: float,
    debug: DebugCollector | None = None,
) -> InverterResult:
    """Apply the part-load efficiency curve and clip to the inverter AC capacity."""

    debug = debug or NullDebugCollector()
    if dc_power_w <= 0:
        return InverterResult(ac_power_w=0.0, clipping_loss_w=0.0, efficiency=0.0)

    ac_capacity = inverter.ac_capacity_for(dc_capacity_w)
    load_ratio = dc_power_w / dc_capacity_w if dc_capacity_w > 0 else 1.0
    multiplier = part_load_multiplier(load_ratio)
    efficiency = inverter.efficiency * multiplier

    ac = dc_power_w * efficiency
    clipped = 0.0
    if ac > ac_capacity:
        clipped = ac - ac_capacity
        ac = ac_capacity

    debug.emit(
        "pv.inverter",
        {
            "dc_w": dc_power_w,
            "ac_capacity_w": ac_capacity,
            "load_ratio": load_ratio,
            "part_load_multiplier": multiplier,
            "efficiency": efficiency,
            "ac_w": ac,
            "clipped_w": clipped,
        },
        ts=None,
    )
    return InverterResult(ac_power_w=ac, clipping_loss_w=clipped, efficiency=efficiency)


def panel_power(
    poa: PlaneOfArrayIrradiance,
    panel: PanelSpec,
    ambient_c: float,
    panel_count: int = 1,
    losses: SystemLosses = DEFAULT_SYSTEM_LOSSES,
    inverter: InverterSpec = DEFAULT_INVERTER,
    wind_ms: float = 1.0,
    debug: DebugCollector | None = None,
) -> PanelPowerResult:
    """AC and DC output of ``panel_count`` identical panels behind one inverter."""

    dc = dc_power(poa, panel, ambient_c, losses, wind_ms)
    total_dc = dc.dc_power_w * panel_count
    dc_capacity = panel.rated_power_w * panel_count

    inv = inverter_output(total_dc, inverter, dc_capacity, debug=debug)
    clipping_pct = inv.clipping_loss_w / total_dc * 100.0 if total_dc > 0 else 0.0

    return PanelPowerResult(
        ac_power_w=inv.ac_power_w,
        dc_power_w=total_dc,
        cell_temp_c=dc.cell_temp_c,
        losses=replace(dc.losses, inverter_clipping=clipping_pct),
    )


def loss_breakdown(factors: LossFactors, losses: SystemLosses) -> List[LossBreakdownRow]:
    """Human-readable loss rows; a negative percentage is a gain."""
    rows: List[LossBreakdownRow] = []

    if factors.temperature < 1:
        rows.append(LossBreakdownRow("Temperature", (1 - factors.temperature) * 100, "Power reduction due to cell heating"))
    elif factors.temperature > 1:
        rows.append(LossBreakdownRow("Temperature (Gain)", -(factors.temperature - 1) * 100, "Power gain from cold conditions"))

    if factors.incidence_angle < 1:
        rows.append(
            LossBreakdownRow("Reflection (IAM)", (1 - factors.incidence_angle) * 100, "Surface reflection at angle of incidence")
        )

    for name, value, description in (
        ("Soiling", losses.soiling, "Dust and debris on panel surface"),
        ("Shading", losses.shading, "Partial shading from obstructions"),
        ("Mismatch", losses.mismatch, "Module-to-module power variation"),
        ("DC Wiring", losses.wiring, "Resistive losses in DC cabling"),
    ):
        if value > 0:
            rows.append(LossBreakdownRow(name, value * 100, description))

    if factors.inverter_clipping > 0:
        rows.append(LossBreakdownRow("Inverter Clipping", factors.inverter_clipping, "Power limited by inverter AC capacity"))

    return rows


__all__ = [
    "STC_IRRADIANCE_WM2",
    "LossFactors",
    "DcResult",
    "InverterResult",
    "PanelPowerResult",
    "LossBreakdownRow",
    "temperature_derating",
    "system_loss_factor",
    "total_system_loss_percent",
    "dc_power",
    "part_load_multiplier",
    "inverter_output",
    "panel_power",
    "loss_breakdown",
]
