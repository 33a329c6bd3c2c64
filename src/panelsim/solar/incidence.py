"""Angle of incidence and incidence-angle modifier helpers built on pvlib."""
from __future__ import annotations

import pvlib

# Hemispherical-average reflection factor applied to sky diffuse.
DIFFUSE_IAM = 0.97
ASHRAE_B0 = 0.05


def angle_of_incidence(sun_zenith: float, sun_azimuth: float, tilt_deg: float, azimuth_deg: float) -> float:
    """Angle (deg, 0..180) between the sun ray and the panel normal."""
    return float(pvlib.irradiance.aoi(tilt_deg, azimuth_deg, sun_zenith, sun_azimuth))


def iam_ashrae(aoi_deg: float, b0: float = ASHRAE_B0) -> float:
    """ASHRAE modifier ``1 - b0 * (1/cos(aoi) - 1)`` clamped to [0, 1]; 0 at or beyond 90 deg."""
    if aoi_deg >= 90:
        return 0.0
    iam = float(pvlib.iam.ashrae(aoi_deg, b=b0))
    return min(1.0, max(0.0, iam))


def iam_physical(aoi_deg: float, a_r: float = 0.16) -> float:
    """Martin-Ruiz modifier; tracks measured glass better than ASHRAE near grazing angles."""
    if aoi_deg >= 90:
        return 0.0
    if aoi_deg <= 0:
        return 1.0
    iam = float(pvlib.iam.martin_ruiz(aoi_deg, a_r=a_r))
    return min(1.0, max(0.0, iam))


__all__ = ["DIFFUSE_IAM", "ASHRAE_B0", "angle_of_incidence", "iam_ashrae", "iam_physical"]
