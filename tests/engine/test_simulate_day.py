import datetime as dt
from collections import Counter

import pytest

from panelsim.core.debug import ListDebugCollector
from panelsim.core.models import ArrayOrientation, Location, PVSystem
from panelsim.core.presets import get_location_preset, get_panel_preset
from panelsim.engine.simulate import simulate, simulate_day, simulate_instant

SOLSTICE = dt.date(2024, 6, 21)


def _system(location=None, panel_count=10, tilt=35.0, azimuth=180.0):
    return PVSystem(
        location=location or get_location_preset("san-francisco").location,
        panel=get_panel_preset("generic-400").spec,
        orientation=ArrayOrientation(tilt_deg=tilt, azimuth_deg=azimuth),
        panel_count=panel_count,
    )


def test_profile_has_24_half_hour_samples():
    profile = simulate_day(_system(), SOLSTICE)
    assert [s.hour for s in profile.hourly] == list(range(24))
    assert all(s.local_time.minute == 30 for s in profile.hourly)
    assert all(s.local_time.hour == s.hour for s in profile.hourly)
    assert profile.hourly[0].ac_power_w == 0.0
    assert profile.hourly[23].ac_power_w == 0.0


def test_profile_statistics_are_consistent():
    system = _system()
    profile = simulate_day(system, SOLSTICE)
    ac = [s.ac_power_w for s in profile.hourly]

    assert profile.daily_energy_wh == pytest.approx(sum(ac))
    assert profile.peak_power_w == max(ac)
    assert 11 <= profile.peak_hour <= 14
    assert 0 < profile.capacity_factor < 1
    assert profile.capacity_factor == pytest.approx(profile.daily_energy_wh / (system.dc_capacity_w * 24))
    assert 0 < profile.performance_ratio <= 1
    for s in profile.hourly:
        assert 0 <= s.ac_power_w <= s.dc_power_w or s.dc_power_w == 0
        if s.position.zenith >= 90:
            assert s.ac_power_w == 0.0
            assert s.poa.total == 0.0


def test_frame_and_summary_shapes():
    profile = simulate_day(_system(), SOLSTICE)
    frame = profile.to_frame()
    assert len(frame) == 24
    assert frame.index.name == "local_time"
    assert {"utc", "elevation", "ghi_wm2", "poa_total", "temp_cell_c", "pdc_w", "pac_w", "clipping_pct"} <= set(frame.columns)
    summary = profile.summary()
    assert summary["date"] == "2024-06-21"
    assert summary["energy_kwh"] == pytest.approx(profile.daily_energy_wh / 1000)
    assert summary["instant_power_w"] == 0.0


def test_debug_stage_counts():
    debug = ListDebugCollector()
    simulate_day(_system(), SOLSTICE, debug=debug)
    counts = Counter(debug.stages())
    assert counts["stage.hour"] == 24
    assert counts["profile.summary"] == 1
    assert counts["civil_time.resolve"] == 24
    hours = {e["hour"] for e in debug.events if e["stage"] == "stage.hour"}
    assert hours == set(range(24))
    assert all(e["site"] == "san-francisco" for e in debug.events if e["stage"] == "stage.hour")


def test_polar_night_produces_nothing():
    tromso = Location(id="tromso", lat=69.6492, lon=18.9553, tz="Europe/Oslo")
    profile = simulate_day(_system(location=tromso), dt.date(2024, 12, 21))
    assert profile.daily_energy_wh == 0.0
    assert profile.peak_power_w == 0.0
    assert profile.peak_hour == 12
    assert profile.performance_ratio == 0.0


def test_energy_scales_with_panel_count():
    ten = simulate_day(_system(panel_count=10), SOLSTICE)
    twenty = simulate_day(_system(panel_count=20), SOLSTICE)
    assert 1.8 <= twenty.daily_energy_wh / ten.daily_energy_wh <= 2.2


def test_spring_forward_day_still_has_24_samples():
    la = Location(id="la", lat=34.05, lon=-118.24, tz="America/Los_Angeles")
    profile = simulate_day(_system(location=la), dt.date(2024, 3, 10))
    assert len(profile.hourly) == 24
    instants = [s.instant for s in profile.hourly]
    assert instants == sorted(instants)
    # 02:30 does not exist and lands on 03:30 PDT.
    assert profile.hourly[2].local_time.hour == 3


def test_instant_at_one_pm():
    result = simulate_instant(_system(), SOLSTICE, 13.0)
    assert result.local_time == "1:00 PM"
    assert 65 <= result.position.elevation <= 80
    assert 700 <= result.poa.total <= 1200
    assert result.ac_power_w > 0
    assert not result.is_night
    assert not result.is_twilight
    assert result.is_optimal
    rows = result.loss_breakdown(_system())
    assert rows[0].name == "Temperature"
    assert result.to_dict()["pac_w"] == result.ac_power_w


def test_instant_at_night():
    result = simulate_instant(_system(), SOLSTICE, 0.5)
    assert result.is_night
    assert result.ac_power_w == 0.0
    assert result.local_time == "12:30 AM"


def test_simulate_combines_instant_and_day():
    result = simulate(_system(), SOLSTICE, 13.0)
    assert result.daily.instant_power_w == result.instant.ac_power_w
    assert result.daily.summary()["instant_power_w"] == result.instant.ac_power_w
    assert 14 < result.daylight_hours < 15.5
    assert 5 < result.sun_times["sunrise"] < 7
    assert 20 < result.sun_times["sunset"] < 21
    assert 12.5 < result.sun_times["solar_noon"] < 13.5
