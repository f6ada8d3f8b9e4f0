import math
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from wellcore.interface import AnnularLossCorrelation, TrajectorySampler
from wellcore.lib.geometry import AnnulusSection, StringSection
from wellcore.lib.rheology import MIN_AREA, apl_simplified
from wellcore.settings import HYDRAULICS

# kPa per (kg/m3 * m): rho * g / 1000
PRESSURE_GRADIENT = 0.00981


# ==========================================
# 1. Velocity and equivalent densities
# ==========================================

def annular_velocity(flow_rate: float, hole_diameter: float, pipe_diameter: float) -> float:
    """Q / annular area. Flow in m3/min gives m/min."""
    area = math.pi / 4.0 * (hole_diameter ** 2 - pipe_diameter ** 2)
    if area <= MIN_AREA:
        return 0.0
    return flow_rate / area


def ecd(static_density: float, apl_kpa: float, tvd: float) -> float:
    """ECD = rho + APL*1000 / (g*TVD), kg/m3."""
    if tvd <= 0:
        return static_density
    return static_density + apl_kpa * 1000.0 / (HYDRAULICS.gravity * tvd)


def esd(static_density: float, surface_pressure_kpa: float, tvd: float) -> float:
    """Same as ecd() with back-pressure in place of friction."""
    if tvd <= 0:
        return static_density
    return static_density + surface_pressure_kpa * 1000.0 / (HYDRAULICS.gravity * tvd)


# ==========================================
# 2. APL over the section tables
# ==========================================

def pipe_od_at_depth(depth: float, string_sections: Sequence[StringSection]) -> float:
    for sec in string_sections:
        if sec.top_md <= depth <= sec.bottom_md:
            return sec.outer_diameter
    if string_sections:
        return string_sections[0].outer_diameter
    return HYDRAULICS.default_pipe_od


def apl_over_depth_range(to_depth: float, density: float, flow_rate: float,
                         annulus_sections: Sequence[AnnulusSection],
                         string_sections: Sequence[StringSection],
                         surface_friction: float = 0.0,
                         correlation: Optional[AnnularLossCorrelation] = None,
                         params: Optional[dict] = None) -> float:
    """
    Total APL (kPa) from surface to `to_depth`, plus surface/choke friction.
    Each annulus section is clipped at `to_depth`; the pipe OD comes from the
    string section at the clipped midpoint.
    """
    if flow_rate <= HYDRAULICS.min_flow_rate:
        return surface_friction

    total = 0.0
    for sec in annulus_sections:
        top = sec.top_md
        bottom = min(sec.bottom_md, to_depth)
        if bottom <= top:
            continue
        pipe_od = pipe_od_at_depth(0.5 * (top + bottom), string_sections)
        if correlation is None:
            total += apl_simplified(density, bottom - top, flow_rate, sec.inner_diameter, pipe_od)
        else:
            total += correlation.annular_loss(density, bottom - top, flow_rate,
                                              sec.inner_diameter, pipe_od, params)
    return total + surface_friction


# ==========================================
# 3. Hydrostatics from a layer stack
# ==========================================

def hydrostatic_from_layers(layers: Iterable, depth_md: float,
                            trajectory: Optional[TrajectorySampler] = None) -> float:
    """
    Hydrostatic pressure (kPa) at `depth_md` from layers carrying
    density/top_md/bottom_md. Without a trajectory TVD = MD.
    """
    tvd = trajectory.tvd_of_md if trajectory is not None else (lambda md: md)
    total = 0.0
    for layer in layers:
        top = max(min(layer.top_md, layer.bottom_md), 0.0)
        bottom = min(max(layer.top_md, layer.bottom_md), depth_md)
        if bottom <= top:
            continue
        dtvd = tvd(bottom) - tvd(top)
        if dtvd > 0:
            total += layer.density * PRESSURE_GRADIENT * dtvd
    return total


def esd_from_layers(layers: Iterable, depth_md: float,
                    trajectory: Optional[TrajectorySampler] = None) -> float:
    """Equivalent static density (kg/m3) at depth; 0 when TVD <= 0."""
    tvd = trajectory.tvd_of_md(depth_md) if trajectory is not None else depth_md
    if tvd <= 0:
        return 0.0
    return hydrostatic_from_layers(layers, depth_md, trajectory) / (PRESSURE_GRADIENT * tvd)


# ==========================================
# 4. Well-control compositions
# ==========================================

def bottom_hole_pressure(layers: Sequence, depth_md: float,
                         annulus_sections: Sequence[AnnulusSection] = (),
                         string_sections: Sequence[StringSection] = (),
                         flow_rate: float = 0.0, surface_pressure_kpa: float = 0.0,
                         trajectory: Optional[TrajectorySampler] = None,
                         correlation: Optional[AnnularLossCorrelation] = None,
                         params: Optional[dict] = None) -> float:
    """
    BHP (kPa) at `depth_md` = surface back-pressure + layer hydrostatics
    + annular friction to that depth. Friction is evaluated with the
    column's equivalent static density.
    """
    hydrostatic = hydrostatic_from_layers(layers, depth_md, trajectory)
    friction = 0.0
    if flow_rate > HYDRAULICS.min_flow_rate and annulus_sections:
        density = esd_from_layers(layers, depth_md, trajectory)
        friction = apl_over_depth_range(depth_md, density, flow_rate, annulus_sections, string_sections,
                                        0.0, correlation, params)
    return surface_pressure_kpa + hydrostatic + friction


def required_surface_pressure(target_bhp_kpa: float, layers: Sequence, depth_md: float,
                              annulus_sections: Sequence[AnnulusSection] = (),
                              string_sections: Sequence[StringSection] = (),
                              flow_rate: float = 0.0,
                              trajectory: Optional[TrajectorySampler] = None,
                              correlation: Optional[AnnularLossCorrelation] = None,
                              params: Optional[dict] = None) -> float:
    """SBP (kPa) to reach a target BHP with the given column and friction; never negative."""
    without_sbp = bottom_hole_pressure(layers, depth_md, annulus_sections, string_sections, flow_rate,
                                       0.0, trajectory, correlation, params)
    return max(target_bhp_kpa - without_sbp, 0.0)


def required_uniform_density(target_bhp_kpa: float, tvd: float, friction_gradient_kpa_m: float = 0.0,
                             surface_pressure_kpa: float = 0.0) -> float:
    """Single-fluid density (kg/m3) reaching the target BHP with the given SBP and friction gradient."""
    if tvd <= 0:
        return 0.0
    hydrostatic = max(target_bhp_kpa - surface_pressure_kpa - friction_gradient_kpa_m * tvd, 0.0)
    return hydrostatic * 1000.0 / (HYDRAULICS.gravity * tvd)


@dataclass(frozen=True)
class WindowPoint:
    tvd: float                          # m
    pore_kpa: Optional[float] = None
    frac_kpa: Optional[float] = None


@dataclass(frozen=True)
class WindowCheck:
    within: bool
    pore_kpa: Optional[float]
    frac_kpa: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


class PressureWindow:
    """
    Pore/fracture pressure table over TVD. Each curve is interpolated
    linearly between the rows that carry it and clamped outside them;
    a curve with no rows is None.
    """

    def __init__(self, points: Sequence[WindowPoint], pore_safety_kpa: float = 0.0,
                 frac_safety_kpa: float = 0.0):
        self.points = sorted(points, key=lambda p: p.tvd)
        self.pore_safety_kpa = pore_safety_kpa
        self.frac_safety_kpa = frac_safety_kpa

    def _curve(self, tvd, attr):
        rows = [(p.tvd, getattr(p, attr)) for p in self.points if getattr(p, attr) is not None]
        if not rows:
            return None
        xs, ys = zip(*rows)
        return float(np.interp(tvd, xs, ys))

    def pore_at(self, tvd: float) -> Optional[float]:
        return self._curve(tvd, "pore_kpa")

    def frac_at(self, tvd: float) -> Optional[float]:
        return self._curve(tvd, "frac_kpa")

    def limits_at(self, tvd: float, apply_safety: bool = True) -> Optional[Tuple[float, float]]:
        """(min, max) allowable pressure at TVD, or None when either curve is missing."""
        pore, frac = self.pore_at(tvd), self.frac_at(tvd)
        if pore is None or frac is None:
            return None
        if apply_safety:
            return pore + self.pore_safety_kpa, frac - self.frac_safety_kpa
        return pore, frac


def check_pressure_window(bhp_kpa: float, tvd: float, window: PressureWindow) -> WindowCheck:
    """BHP must not fall below pore or rise above fracture pressure; a missing curve does not bind."""
    pore, frac = window.pore_at(tvd), window.frac_at(tvd)
    within = not (pore is not None and bhp_kpa < pore) and not (frac is not None and bhp_kpa > frac)
    return WindowCheck(within, pore, frac)
