import math

import pandas as pd
import pytest

from panelsim.solar.atmosphere import (
    SOLAR_CONSTANT_WM2,
    air_mass,
    altitude_factors,
    beam_transmittance,
    day_of_year,
    diffuse_fraction,
    estimate_linke_turbidity,
    extraterrestrial_irradiance,
)


def test_air_mass_bounds():
    assert air_mass(0) == pytest.approx(1.0, abs=1e-3)
    assert air_mass(60) == pytest.approx(2.0, rel=0.01)
    assert math.isinf(air_mass(90))
    assert math.isinf(air_mass(120))
    assert all(air_mass(z) >= 1 for z in range(0, 90, 5))


def test_extraterrestrial_follows_earth_sun_distance():
    # Perihelion in early January, aphelion in early July.
    jan = extraterrestrial_irradiance(3)
    jul = extraterrestrial_irradiance(185)
    assert jan > SOLAR_CONSTANT_WM2 > jul
    assert jan == pytest.approx(1406, abs=5)
    assert jul == pytest.approx(1316, abs=5)


def test_day_of_year_uses_utc_calendar():
    assert day_of_year(pd.Timestamp("2024-12-31 23:00", tz="UTC")) == 366
    # 2024-01-01 20:00 in Los Angeles is already Jan 2 in UTC.
    assert day_of_year(pd.Timestamp("2024-01-01 20:00", tz="America/Los_Angeles")) == 2


def test_beam_transmittance_range():
    assert 0 < beam_transmittance(1.0) < 1
    assert beam_transmittance(5.0) < beam_transmittance(1.0)
    assert beam_transmittance(2.0, linke_turbidity=5) < beam_transmittance(2.0, linke_turbidity=2)
    assert beam_transmittance(math.inf) == 0.0


def test_altitude_factors_shrink_with_height():
    assert altitude_factors(0) == (1.0, 1.0)
    fh1, fh2 = altitude_factors(2000)
    assert 0 < fh2 < fh1 < 1


def test_diffuse_fraction_piecewise():
    assert diffuse_fraction(0.0) == pytest.approx(1.0)
    assert diffuse_fraction(0.9) == pytest.approx(0.165)
    assert diffuse_fraction(0.5) < diffuse_fraction(0.3)
    assert diffuse_fraction(-1) == diffuse_fraction(0)


def test_linke_turbidity_lookup():
    assert estimate_linke_turbidity("low", "clean") == 2.0
    assert estimate_linke_turbidity("High", "Polluted") == 5.0
    with pytest.raises(ValueError):
        estimate_linke_turbidity("soggy", "clean")
