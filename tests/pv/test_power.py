import pytest

from panelsim.core.debug import ListDebugCollector
from panelsim.core.models import InverterSpec, PanelSpec, SystemLosses
from panelsim.pv.power import (
    LossFactors,
    dc_power,
    inverter_output,
    loss_breakdown,
    panel_power,
    part_load_multiplier,
    system_loss_factor,
    temperature_derating,
    total_system_loss_percent,
)
from panelsim.solar.irradiance import PlaneOfArrayIrradiance

PANEL = PanelSpec(width_m=1.134, height_m=2.278, rated_power_w=400, efficiency=0.195, temp_coefficient=-0.35)


def _poa(total=1000.0, effective=950.0):
    return PlaneOfArrayIrradiance(
        total=total, beam=total * 0.8, diffuse=total * 0.2, reflected=0.0, angle_of_incidence=20.0, effective=effective
    )


def test_temperature_derating_bounds():
    assert temperature_derating(25.0, -0.35) == pytest.approx(1.0)
    assert temperature_derating(65.0, -0.35) == pytest.approx(0.86)
    assert temperature_derating(-100.0, -0.35) == 1.15
    assert temperature_derating(300.0, -0.35) == 0.5
    for t in range(-60, 200, 10):
        assert 0.5 <= temperature_derating(t, -0.45) <= 1.15


def test_system_loss_factor_is_product():
    losses = SystemLosses()
    expected = 1.0
    for value in losses.as_dict().values():
        expected *= 1 - value
    assert system_loss_factor(losses) == pytest.approx(expected)
    assert total_system_loss_percent(losses) == pytest.approx((1 - expected) * 100)
    zero = SystemLosses(**{k: 0.0 for k in losses.as_dict()})
    assert system_loss_factor(zero) == 1.0


def test_dc_power_short_circuits_without_irradiance():
    res = dc_power(_poa(0.0, 0.0), PANEL, ambient_c=12.0)
    assert res.dc_power_w == 0.0
    assert res.cell_temp_c == 12.0
    assert (res.losses.temperature, res.losses.incidence_angle, res.losses.spectral) == (1.0, 1.0, 1.0)
    assert res.losses.system_total == pytest.approx(system_loss_factor(SystemLosses()))


def test_dc_power_formula():
    losses = SystemLosses()
    res = dc_power(_poa(), PANEL, ambient_c=25.0, losses=losses)
    expected = 400 * 0.95 * res.losses.temperature * system_loss_factor(losses)
    assert res.dc_power_w == pytest.approx(expected)
    assert res.losses.incidence_angle == pytest.approx(0.95)
    assert res.cell_temp_c > 25.0
    assert res.losses.temperature < 1.0


def test_part_load_curve():
    assert part_load_multiplier(0.05) == pytest.approx(0.925)
    assert part_load_multiplier(0.15) == pytest.approx(0.9875)
    assert part_load_multiplier(0.5) == 1.0


def test_inverter_zero_and_clipping():
    inv = InverterSpec(efficiency=0.96, dc_ac_ratio=1.2)
    assert inverter_output(0.0, inv, 4000.0).ac_power_w == 0.0

    debug = ListDebugCollector()
    res = inverter_output(4000.0, inv, 4000.0, debug=debug)
    ac_cap = 4000.0 / 1.2
    assert res.ac_power_w == pytest.approx(ac_cap)
    assert res.clipping_loss_w == pytest.approx(4000 * 0.96 - ac_cap)
    assert debug.stages() == ["pv.inverter"]

    unclipped = inverter_output(2000.0, inv, 4000.0)
    assert unclipped.clipping_loss_w == 0.0
    assert unclipped.ac_power_w == pytest.approx(2000 * 0.96)


def test_explicit_ac_capacity_wins():
    inv = InverterSpec(efficiency=1.0, dc_ac_ratio=1.2, ac_capacity_w=1000.0)
    assert inverter_output(3000.0, inv, 4000.0).ac_power_w == 1000.0


def test_panel_power_scales_with_count():
    ten = panel_power(_poa(), PANEL, 25.0, panel_count=10)
    twenty = panel_power(_poa(), PANEL, 25.0, panel_count=20)
    assert 1.8 <= twenty.ac_power_w / ten.ac_power_w <= 2.2
    assert twenty.dc_power_w == pytest.approx(2 * ten.dc_power_w)


def test_panel_power_reports_clipping_percent():
    inv = InverterSpec(efficiency=0.96, dc_ac_ratio=2.0)
    res = panel_power(_poa(1000.0, 1000.0), PANEL, -10.0, panel_count=4, inverter=inv)
    assert res.ac_power_w == pytest.approx(800.0)
    assert res.losses.inverter_clipping > 0
    expected = (res.dc_power_w * 0.96 - 800.0) / res.dc_power_w * 100
    assert res.losses.inverter_clipping == pytest.approx(expected)


def test_loss_breakdown_rows():
    losses = SystemLosses(shading=0.0)
    rows = loss_breakdown(LossFactors(0.9, 0.97, 1.0, 0.91, 5.0), losses)
    names = [r.name for r in rows]
    assert names == ["Temperature", "Reflection (IAM)", "Soiling", "Mismatch", "DC Wiring", "Inverter Clipping"]
    assert rows[0].percentage == pytest.approx(10.0)

    gain = loss_breakdown(LossFactors(1.05, 1.0, 1.0, 1.0, 0.0), SystemLosses(soiling=0, mismatch=0, wiring=0))
    assert [(r.name, round(r.percentage, 6)) for r in gain] == [("Temperature (Gain)", -5.0)]
