"""Plane-of-array irradiance with the Perez anisotropic sky model.

References
----------
- Perez R. et al., "Modeling daylight availability and irradiance components
  from direct and global irradiance", Solar Energy 44(5), 1990.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import pvlib

from panelsim.core.debug import DebugCollector, NullDebugCollector
from panelsim.solar.clear_sky import HorizontalIrradiance
from panelsim.solar.incidence import DIFFUSE_IAM, angle_of_incidence, iam_ashrae

# Upper edges of the first seven sky-clearness bins; the eighth is open-ended.
PEREZ_EPSILON_EDGES = (1.065, 1.23, 1.5, 1.95, 2.8, 4.5, 6.2)

# (f11, f12, f13, f21, f22, f23) per clearness bin.
PEREZ_COEFFICIENTS = (
    (-0.0083, 0.5877, -0.0621, -0.0596, 0.0721, -0.0220),  # 1.000-1.065
    (0.1299, 0.6826, -0.1514, -0.0189, 0.0660, -0.0289),  # 1.065-1.230
    (0.3297, 0.4869, -0.2211, 0.0554, -0.0640, -0.0261),  # 1.230-1.500
    (0.5682, 0.1875, -0.2951, 0.1089, -0.1519, -0.0140),  # 1.500-1.950
    (0.8730, -0.3920, -0.3616, 0.2256, -0.4620, 0.0012),  # 1.950-2.800
    (1.1326, -1.2367, -0.4118, 0.2878, -0.8230, 0.0559),  # 2.800-4.500
    (1.0602, -1.5999, -0.3589, 0.2642, -1.1272, 0.1311),  # 4.500-6.200
    (0.6777, -0.3273, -0.2504, 0.1561, -1.3765, 0.2506),  # 6.200+
)

_KAPPA = 1.041
_F_ZENITH_CAP_DEG = 87.0
_COS_85 = math.cos(math.radians(85.0))


@dataclass(frozen=True)
class PlaneOfArrayIrradiance:
    total: float
    beam: float
    diffuse: float
    reflected: float
    angle_of_incidence: float
    effective: float


def perez_clearness(dhi: float, dni: float, zenith_deg: float) -> float:
    """Sky clearness epsilon; 1 (overcast) when there is no diffuse light."""
    if dhi == 0:
        return 1.0
    z3 = math.radians(zenith_deg) ** 3
    return ((dhi + dni) / dhi + _KAPPA * z3) / (1 + _KAPPA * z3)


def perez_brightness(dhi: float, extraterrestrial: float, air_mass: float) -> float:
    """Sky brightness delta."""
    if extraterrestrial == 0:
        return 0.0
    return dhi * air_mass / extraterrestrial


def perez_bin(epsilon: float) -> int:
    """Index (0-7) of the clearness bin containing ``epsilon``."""
    index = 0
    for edge in PEREZ_EPSILON_EDGES:
        if epsilon < edge:
            break
        index += 1
    return min(index, len(PEREZ_COEFFICIENTS) - 1)


def perez_coefficients(epsilon: float) -> tuple[float, ...]:
    return PEREZ_COEFFICIENTS[perez_bin(epsilon)]


def perez_f1_f2(epsilon: float, delta: float, zenith_deg: float) -> tuple[float, float]:
    """Circumsolar (F1, floored at 0) and horizon (F2) brightening coefficients."""
    f11, f12, f13, f21, f22, f23 = perez_coefficients(epsilon)
    z = math.radians(min(zenith_deg, _F_ZENITH_CAP_DEG))
    f1 = max(0.0, f11 + f12 * delta + f13 * z)
    f2 = f21 + f22 * delta + f23 * z
    return f1, f2


def _zero_poa(sun_zenith: float) -> PlaneOfArrayIrradiance:
    return PlaneOfArrayIrradiance(
        total=0.0,
        beam=0.0,
        diffuse=0.0,
        reflected=0.0,
        angle_of_incidence=90.0 if sun_zenith >= 90 else 0.0,
        effective=0.0,
    )


def poa_irradiance(
    irradiance: HorizontalIrradiance,
    sun_zenith: float,
    sun_azimuth: float,
    tilt_deg: float,
    azimuth_deg: float,
    albedo: float = 0.2,
    debug: DebugCollector | None = None,
) -> PlaneOfArrayIrradiance:
    """Transpose horizontal irradiance onto a tilted plane.

    ``total`` is beam + sky diffuse + ground reflected before any reflection loss.
    ``effective`` applies the ASHRAE modifier to the beam, ``DIFFUSE_IAM`` to the sky
    diffuse and leaves the ground term untouched.
    """

    debug = debug or NullDebugCollector()
    if sun_zenith >= 90 or irradiance.ghi <= 0:
        return _zero_poa(sun_zenith)

    aoi = angle_of_incidence(sun_zenith, sun_azimuth, tilt_deg, azimuth_deg)
    cos_aoi = math.cos(math.radians(aoi))
    tilt = math.radians(tilt_deg)
    cos_zenith = math.cos(math.radians(sun_zenith))

    beam = 0.0
    if aoi < 90 and irradiance.dni > 0:
        beam = irradiance.dni * max(0.0, cos_aoi)

    diffuse = 0.0
    if irradiance.dhi > 0:
        epsilon = perez_clearness(irradiance.dhi, irradiance.dni, sun_zenith)
        delta = perez_brightness(irradiance.dhi, irradiance.extraterrestrial, irradiance.air_mass)
        f1, f2 = perez_f1_f2(epsilon, delta, sun_zenith)

        a = max(0.0, cos_aoi)
        b = max(_COS_85, cos_zenith)
        isotropic = irradiance.dhi * (1 + math.cos(tilt)) / 2 * (1 - f1)
        circumsolar = irradiance.dhi * f1 * (a / b)
        horizon = irradiance.dhi * f2 * math.sin(tilt)
        diffuse = max(0.0, isotropic + circumsolar + horizon)

        debug.emit(
            "poa.perez",
            {"epsilon": epsilon, "delta": delta, "bin": perez_bin(epsilon), "f1": f1, "f2": f2},
            ts=None,
        )

    reflected = max(0.0, float(pvlib.irradiance.get_ground_diffuse(tilt_deg, irradiance.ghi, albedo=albedo)))
    total = beam + diffuse + reflected

    effective = beam * iam_ashrae(aoi) + diffuse * DIFFUSE_IAM + reflected

    return PlaneOfArrayIrradiance(
        total=max(0.0, total),
        beam=max(0.0, beam),
        diffuse=max(0.0, diffuse),
        reflected=reflected,
        angle_of_incidence=aoi,
        effective=max(0.0, effective),
    )


__all__ = [
    "PEREZ_EPSILON_EDGES",
    "PEREZ_COEFFICIENTS",
    "PlaneOfArrayIrradiance",
    "perez_clearness",
    "perez_brightness",
    "perez_bin",
    "perez_coefficients",
    "perez_f1_f2",
    "poa_irradiance",
]
