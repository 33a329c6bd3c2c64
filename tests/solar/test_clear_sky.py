import datetime as dt
import math

import pandas as pd
import pytest

from panelsim.solar.clear_sky import MIN_DIFFUSE_FRACTION, clear_sky_irradiance, daily_clear_sky
from panelsim.solar.position import solar_position

TS = pd.Timestamp("2024-06-21 20:00", tz="UTC")


def test_night_is_all_zero():
    irr = clear_sky_irradiance(TS, 95.0)
    assert (irr.ghi, irr.dni, irr.dhi) == (0.0, 0.0, 0.0)
    assert irr.clearness_index == 0.0
    assert math.isinf(irr.air_mass)


@pytest.mark.parametrize("zenith", [0.0, 10.0, 30.0, 60.0, 80.0, 89.5])
def test_daytime_consistency_and_bounds(zenith):
    irr = clear_sky_irradiance(TS, zenith, linke_turbidity=3.0, altitude_m=100)
    cos_z = math.cos(math.radians(zenith))
    assert irr.ghi == pytest.approx(irr.dni * cos_z + irr.dhi, rel=1e-9, abs=1e-9)
    assert 0 <= irr.clearness_index <= 1
    assert irr.air_mass >= 1
    assert 0 <= irr.dhi <= irr.ghi
    assert irr.dhi >= MIN_DIFFUSE_FRACTION * irr.extraterrestrial * cos_z - 1e-9


def test_plausible_magnitudes_near_noon():
    irr = clear_sky_irradiance(TS, 15.0)
    assert 850 <= irr.ghi <= 1100
    assert 700 <= irr.dni <= 1000
    assert 50 <= irr.dhi <= 250


def test_turbidity_and_altitude_effects():
    clean = clear_sky_irradiance(TS, 30.0, linke_turbidity=2.0)
    hazy = clear_sky_irradiance(TS, 30.0, linke_turbidity=5.0)
    assert hazy.dni < clean.dni
    sea = clear_sky_irradiance(TS, 30.0, altitude_m=0)
    mountain = clear_sky_irradiance(TS, 30.0, altitude_m=3000)
    assert mountain.dni > sea.dni


def test_daily_clear_sky_samples_mid_hours():
    seen = []

    def zenith_for(ts):
        seen.append(ts)
        return solar_position(ts, 37.7749, -122.4194).zenith

    results = daily_clear_sky(dt.date(2024, 6, 21), zenith_for)
    assert len(results) == 24
    assert all(ts.minute == 30 for ts in seen)
    assert results[8].ghi == 0.0  # 08:30Z is 01:30 PDT
    assert max(r.ghi for r in results) > 800
