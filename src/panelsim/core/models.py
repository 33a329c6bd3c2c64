"""Domain models for the panel simulator core.

Provides immutable input records with validation for locations, panels, array
orientation, system losses, inverters and the bundled PV system. Validation
happens here, at the configuration boundary; the numeric pipeline only clamps
physically derived intermediates.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Optional


class ValidationError(ValueError):
    """Raised when model inputs violate constraints."""


@dataclass(frozen=True)
class Location:
    id: str
    lat: float
    lon: float
    tz: str = "UTC"
    elevation_m: Optional[float] = None

    def __post_init__(self):
        if not self.id:
            raise ValidationError("Location id is required")
        if not (-90.0 <= self.lat <= 90.0):
            raise ValidationError("Latitude must be between -90 and 90 degrees")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValidationError("Longitude must be between -180 and 180 degrees")
        if not self.tz:
            raise ValidationError("Timezone identifier is required")
        if self.elevation_m is not None and self.elevation_m < 0.0:
            raise ValidationError("Elevation must be non-negative (meters above sea level)")

    @property
    def altitude_m(self) -> float:
        return float(self.elevation_m or 0.0)


@dataclass(frozen=True)
class PanelSpec:
    """Datasheet values of a single module.

    ``temp_coefficient`` is the power temperature coefficient in %/°C (e.g. -0.35).
    """

    width_m: float
    height_m: float
    rated_power_w: float
    efficiency: float
    temp_coefficient: float
    noct_c: float = 45.0
    bifacial: bool = False
    bifaciality_factor: Optional[float] = None

    def __post_init__(self):
        if self.width_m <= 0 or self.height_m <= 0:
            raise ValidationError("Panel dimensions must be positive")
        if self.rated_power_w <= 0:
            raise ValidationError("rated_power_w must be positive")
        if not (0 < self.efficiency <= 1):
            raise ValidationError("efficiency must be in (0, 1]")
        if self.temp_coefficient > 0:
            raise ValidationError("temp_coefficient should be negative (%/°C)")
        if self.noct_c <= 0:
            raise ValidationError("noct_c must be positive")
        if self.bifaciality_factor is not None and not (0.0 <= self.bifaciality_factor <= 1.0):
            raise ValidationError("bifaciality_factor must be between 0 and 1")

    @property
    def area_m2(self) -> float:
        return self.width_m * self.height_m


@dataclass(frozen=True)
class ArrayOrientation:
    tilt_deg: float
    azimuth_deg: float = 180.0

    def __post_init__(self):
        if not (0.0 <= self.tilt_deg <= 90.0):
            raise ValidationError("Tilt must be between 0 and 90 degrees")
        # Accept any heading and fold it into [0, 360); 180 faces the equator in the north.
        if not (0.0 <= self.azimuth_deg < 360.0):
            object.__setattr__(self, "azimuth_deg", self.azimuth_deg % 360.0)


@dataclass(frozen=True)
class SystemLosses:
    """Independent multiplicative loss fractions, each in [0, 1)."""

    soiling: float = 0.02
    shading: float = 0.0
    mismatch: float = 0.02
    wiring: float = 0.02
    connections: float = 0.005
    degradation: float = 0.015
    nameplate: float = 0.01
    availability: float = 0.003

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not (0.0 <= value < 1.0):
                raise ValidationError(f"Loss '{f.name}' must be in [0, 1), got {value}")

    def as_dict(self) -> dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class InverterSpec:
    """Inverter parameters.

    ``ac_capacity_w`` of 0 means "derive from DC capacity / dc_ac_ratio".
    """

    efficiency: float = 0.96
    dc_ac_ratio: float = 1.2
    ac_capacity_w: float = 0.0

    def __post_init__(self):
        if not (0 < self.efficiency <= 1):
            raise ValidationError("inverter efficiency must be in (0, 1]")
        if self.dc_ac_ratio <= 0:
            raise ValidationError("dc_ac_ratio must be positive")
        if self.ac_capacity_w < 0:
            raise ValidationError("ac_capacity_w must be non-negative")

    def ac_capacity_for(self, dc_capacity_w: float) -> float:
        return self.ac_capacity_w or dc_capacity_w / self.dc_ac_ratio


DEFAULT_SYSTEM_LOSSES = SystemLosses()
DEFAULT_INVERTER = InverterSpec()


@dataclass(frozen=True)
class PVSystem:
    location: Location
    panel: PanelSpec
    orientation: ArrayOrientation
    panel_count: int = 1
    losses: SystemLosses = field(default_factory=SystemLosses)
    inverter: InverterSpec = field(default_factory=InverterSpec)
    ambient_temp_c: float = 25.0
    wind_ms: float = 1.0
    albedo: float = 0.2
    linke_turbidity: float = 3.0

    def __post_init__(self):
        if not isinstance(self.location, Location):
            raise ValidationError("location must be a Location instance")
        if not isinstance(self.panel, PanelSpec):
            raise ValidationError("panel must be a PanelSpec instance")
        if not isinstance(self.orientation, ArrayOrientation):
            raise ValidationError("orientation must be an ArrayOrientation instance")
        if isinstance(self.panel_count, bool) or int(self.panel_count) != self.panel_count:
            raise ValidationError("panel_count must be an integer")
        if self.panel_count < 1:
            raise ValidationError("panel_count must be at least 1")
        object.__setattr__(self, "panel_count", int(self.panel_count))
        if not (0.0 <= self.albedo <= 1.0):
            raise ValidationError("albedo must be between 0 and 1")
        if self.linke_turbidity <= 0:
            raise ValidationError("linke_turbidity must be positive")
        if self.wind_ms < 0:
            raise ValidationError("wind_ms must be non-negative")

    @property
    def dc_capacity_w(self) -> float:
        return self.panel.rated_power_w * self.panel_count


__all__ = [
    "ValidationError",
    "Location",
    "PanelSpec",
    "ArrayOrientation",
    "SystemLosses",
    "InverterSpec",
    "PVSystem",
    "DEFAULT_SYSTEM_LOSSES",
    "DEFAULT_INVERTER",
]
