import math

import pytest

from correlations.bingham import BinghamPlastic
from wellcore.lib.geometry import AnnulusSection, StringSection
from wellcore.lib.hydraulics import (PressureWindow, WindowPoint, annular_velocity, apl_over_depth_range,
                                     bottom_hole_pressure, check_pressure_window, ecd, esd,
                                     esd_from_layers, hydrostatic_from_layers, required_surface_pressure,
                                     required_uniform_density)
from wellcore.lib.layers import LayerSegment
from wellcore.lib.rheology import apl_bingham, apl_simplified


def test_annular_velocity():
    area = math.pi / 4 * (0.2 ** 2 - 0.1 ** 2)
    assert annular_velocity(1.0, 0.2, 0.1) == pytest.approx(1.0 / area)
    assert annular_velocity(1.0, 0.1, 0.1) == 0.0
    assert annular_velocity(1.0, 0.1, 0.2) == 0.0


def test_ecd_and_esd():
    assert ecd(1200.0, 981.0, 1000.0) == pytest.approx(1300.0)
    assert esd(1200.0, 981.0, 1000.0) == pytest.approx(1300.0)
    assert ecd(1200.0, 981.0, 0.0) == 1200.0
    assert esd(1200.0, 500.0, -5.0) == 1200.0


def test_apl_below_min_flow_returns_surface_friction(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    assert apl_over_depth_range(1500.0, 1200.0, 0.0005, annulus, string, surface_friction=50.0) == 50.0
    assert apl_over_depth_range(1500.0, 1200.0, 0.001, annulus, string) == 0.0


def test_apl_sums_clipped_sections(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    expected = (apl_simplified(1200.0, 1000.0, 1.0, 0.22, 0.127)
                + apl_simplified(1200.0, 500.0, 1.0, 0.2, 0.127) + 25.0)
    assert apl_over_depth_range(1500.0, 1200.0, 1.0, annulus, string, 25.0) == pytest.approx(expected)


def test_apl_ignores_sections_below_depth(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    shallow = apl_over_depth_range(800.0, 1200.0, 1.0, annulus, string)
    assert shallow == pytest.approx(apl_simplified(1200.0, 800.0, 1.0, 0.22, 0.127))


def test_apl_pipe_od_fallbacks():
    annulus = [AnnulusSection(0.0, 1000.0, 0.2)]
    # no string: default pipe OD 0.127 m
    assert apl_over_depth_range(1000.0, 1200.0, 1.0, annulus, []) == pytest.approx(
        apl_simplified(1200.0, 1000.0, 1.0, 0.2, 0.127))
    # string does not reach the midpoint: first string section OD
    string = [StringSection(0.0, 100.0, 0.1397, 0.1186), StringSection(100.0, 200.0, 0.0889, 0.07)]
    assert apl_over_depth_range(1000.0, 1200.0, 1.0, annulus, string) == pytest.approx(
        apl_simplified(1200.0, 1000.0, 1.0, 0.2, 0.1397))


def test_apl_with_injected_correlation(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    params = {"pv_cp": 20.0, "yp_pa": 7.0}
    total = apl_over_depth_range(2000.0, 1200.0, 1.0, annulus, string,
                                 correlation=BinghamPlastic(), params=params)
    expected = (apl_bingham(1000.0, 1.0, 0.22, 0.127, 20.0, 7.0)
                + apl_bingham(1000.0, 1.0, 0.2, 0.127, 20.0, 7.0))
    assert total == pytest.approx(expected)


def test_esd_from_layers():
    layers = [LayerSegment(1000.0, 0.0, 1000.0), LayerSegment(2000.0, 1000.0, 2000.0)]
    assert hydrostatic_from_layers(layers, 2000.0) == pytest.approx(3000.0 * 0.00981 * 1000.0)
    assert esd_from_layers(layers, 2000.0) == pytest.approx(1500.0)
    assert esd_from_layers(layers, 500.0) == pytest.approx(1000.0)
    assert esd_from_layers(layers, 0.0) == 0.0


COLUMN = [LayerSegment(1200.0, 0.0, 2000.0)]
HYDROSTATIC_2000 = 1200.0 * 0.00981 * 2000.0


def test_bhp_static_column():
    assert bottom_hole_pressure(COLUMN, 2000.0) == pytest.approx(HYDROSTATIC_2000)
    assert bottom_hole_pressure(COLUMN, 2000.0, surface_pressure_kpa=500.0) == pytest.approx(HYDROSTATIC_2000 + 500.0)


def test_bhp_adds_annular_friction(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    friction = apl_over_depth_range(2000.0, 1200.0, 1.0, annulus, string)
    assert friction > 0
    bhp = bottom_hole_pressure(COLUMN, 2000.0, annulus, string, flow_rate=1.0, surface_pressure_kpa=300.0)
    assert bhp == pytest.approx(300.0 + HYDROSTATIC_2000 + friction)
    # no circulation, no friction
    assert bottom_hole_pressure(COLUMN, 2000.0, annulus, string) == pytest.approx(HYDROSTATIC_2000)


def test_required_surface_pressure(casing_and_open_hole):
    annulus, string = casing_and_open_hole
    assert required_surface_pressure(HYDROSTATIC_2000 + 1000.0, COLUMN, 2000.0) == pytest.approx(1000.0)
    assert required_surface_pressure(HYDROSTATIC_2000 - 1000.0, COLUMN, 2000.0) == 0.0
    circulating = bottom_hole_pressure(COLUMN, 2000.0, annulus, string, flow_rate=1.0)
    assert required_surface_pressure(circulating + 250.0, COLUMN, 2000.0, annulus, string,
                                     flow_rate=1.0) == pytest.approx(250.0)


def test_required_uniform_density():
    target = 1300.0 * 9.81 * 2000.0 / 1000.0
    assert required_uniform_density(target, 2000.0) == pytest.approx(1300.0)
    expected = (target - 500.0 - 1.0 * 2000.0) * 1000.0 / (9.81 * 2000.0)
    assert required_uniform_density(target, 2000.0, 1.0, 500.0) == pytest.approx(expected)
    assert required_uniform_density(100.0, 2000.0, surface_pressure_kpa=500.0) == 0.0
    assert required_uniform_density(target, 0.0) == 0.0


@pytest.fixture
def window():
    return PressureWindow([
        WindowPoint(2000.0, 22000.0, 36000.0),
        WindowPoint(1500.0, None, 30000.0),
        WindowPoint(1000.0, 10000.0, 20000.0),
    ], pore_safety_kpa=500.0, frac_safety_kpa=1000.0)


def test_pressure_window_interpolation(window):
    assert window.pore_at(1500.0) == pytest.approx(16000.0)
    assert window.frac_at(1500.0) == pytest.approx(30000.0)
    assert window.frac_at(1250.0) == pytest.approx(25000.0)
    assert window.pore_at(500.0) == 10000.0
    assert window.pore_at(3000.0) == 22000.0
    assert window.limits_at(1000.0) == pytest.approx((10500.0, 19000.0))
    assert window.limits_at(1000.0, apply_safety=False) == pytest.approx((10000.0, 20000.0))


@pytest.mark.parametrize("bhp, within", [
    (15000.0, True),
    (9000.0, False),
    (25000.0, False),
])
def test_pressure_window_check(window, bhp, within):
    res = check_pressure_window(bhp, 1000.0, window)
    assert res.within is within
    assert (res.pore_kpa, res.frac_kpa) == (10000.0, 20000.0)


def test_empty_window_does_not_bind():
    res = check_pressure_window(1e9, 1000.0, PressureWindow([]))
    assert res.within
    assert res.pore_kpa is None and res.frac_kpa is None
    assert PressureWindow([WindowPoint(1000.0, 10000.0)]).limits_at(1000.0) is None
