import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from wellcore.interface import TrajectorySampler
from wellcore.lib.geometry import AnnulusSection
from wellcore.lib.hydraulics import PRESSURE_GRADIENT
from wellcore.settings import HYDRAULICS

MIN_EXPANSION_AREA = 0.0001     # m2


# ==========================================
# 1. Pocket layers
# ==========================================

@dataclass(frozen=True)
class PocketLayer:
    """Fluid below/around the bit during trip-in, top_md < bottom_md."""
    density: float          # kg/m3
    top_md: float           # m
    bottom_md: float        # m
    in_annulus: bool = False
    color: Optional[str] = None


@dataclass(frozen=True)
class LayerSnapshot:
    density: float
    top_md: float
    bottom_md: float
    top_tvd: float
    bottom_tvd: float
    delta_pressure_kpa: float   # rho * 0.00981 * dTVD
    in_annulus: bool = False
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "density": self.density,
            "top_md": self.top_md,
            "bottom_md": self.bottom_md,
            "top_tvd": self.top_tvd,
            "bottom_tvd": self.bottom_tvd,
            "delta_pressure_kpa": self.delta_pressure_kpa,
            "in_annulus": self.in_annulus,
        }


def wellbore_id_at(depth: float, annulus_sections: Sequence[AnnulusSection]) -> float:
    """Hole ID at depth; outside the table the deepest section, then the default bit size."""
    for sec in annulus_sections:
        if sec.top_md <= depth <= sec.bottom_md:
            return sec.inner_diameter
    if annulus_sections:
        return max(annulus_sections, key=lambda s: s.bottom_md).inner_diameter
    return HYDRAULICS.default_wellbore_id


def expansion_factor(depth: float, annulus_sections: Sequence[AnnulusSection], pipe_od: float) -> float:
    """Open-hole area / annular area at depth (1.0 when the annulus is negligible)."""
    d = wellbore_id_at(depth, annulus_sections)
    full_area = math.pi / 4.0 * d * d
    annular_area = math.pi / 4.0 * (d * d - pipe_od * pipe_od)
    if annular_area <= MIN_EXPANSION_AREA:
        return 1.0
    return full_area / annular_area


def compute_displaced_pocket_layers(bit_md: float, pocket_layers: Sequence[PocketLayer],
                                    annulus_sections: Sequence[AnnulusSection], pipe_od: float,
                                    trajectory: Optional[TrajectorySampler] = None) -> List[LayerSnapshot]:
    """
    Pocket layers after the pipe has entered them, deepest first.

    A layer the pipe has passed keeps its volume in the narrower annulus,
    so its height grows by the expansion factor (unless already flagged as
    annulus fluid). A layer straddling the bit only expands above the bit.
    Layers are then restacked upward from the deepest original bottom and
    whatever is pushed past surface is dropped.
    """
    if not pocket_layers:
        return []
    tvd = trajectory.tvd_of_md if trajectory is not None else (lambda md: md)

    heights = []
    for layer in sorted(pocket_layers, key=lambda l: l.bottom_md, reverse=True):
        original = layer.bottom_md - layer.top_md
        if original <= 0:
            continue

        if layer.bottom_md <= bit_md:
            if layer.in_annulus:
                new_height = original
            else:
                mid = 0.5 * (layer.top_md + layer.bottom_md)
                new_height = original * expansion_factor(mid, annulus_sections, pipe_od)
        elif layer.top_md < bit_md:
            if layer.in_annulus:
                new_height = original
            else:
                factor = expansion_factor(0.5 * (layer.top_md + bit_md), annulus_sections, pipe_od)
                new_height = (bit_md - layer.top_md) * factor + (layer.bottom_md - bit_md)
        else:
            new_height = original
        heights.append((layer, new_height))

    result: List[LayerSnapshot] = []
    next_bottom = None
    for layer, new_height in heights:
        bottom = layer.bottom_md if next_bottom is None else next_bottom
        top = bottom - new_height
        next_bottom = top

        if bottom <= 0:
            continue
        top = max(0.0, top)
        if top >= bottom:
            continue

        top_tvd = tvd(top)
        bottom_tvd = tvd(bottom)
        result.append(LayerSnapshot(
            density=layer.density,
            top_md=top,
            bottom_md=bottom,
            top_tvd=top_tvd,
            bottom_tvd=bottom_tvd,
            delta_pressure_kpa=layer.density * PRESSURE_GRADIENT * (bottom_tvd - top_tvd),
            in_annulus=layer.in_annulus,
            color=layer.color,
        ))
    return result


# ==========================================
# 2. Float valve and choke
# ==========================================

@dataclass(frozen=True)
class FloatValveState:
    status: str                     # "Full", "OPEN", "CLOSED"
    percent: Optional[int] = None

    @property
    def label(self) -> str:
        if self.percent is None:
            return self.status
        return f"{self.status} {self.percent}%"


FLOAT_FULL = FloatValveState("Full")


def classify_float_valve(differential_kpa: float, crack_kpa: float) -> FloatValveState:
    """
    OPEN once the annulus-minus-inside differential reaches the crack
    pressure. The percentage is a qualitative indicator clamped to [0, 100].
    """
    ratio = differential_kpa / crack_kpa
    if differential_kpa >= crack_kpa:
        percent = int((ratio - 1.0) * 100 + 50)
        return FloatValveState("OPEN", max(0, min(100, percent)))
    percent = int((1.0 - ratio) * 100)
    return FloatValveState("CLOSED", max(0, min(100, percent)))


def float_is_closed(string_pressure_kpa: float, annulus_pressure_kpa: float,
                    tolerance_kpa: Optional[float] = None) -> bool:
    """The float stays shut until string pressure at the bit beats the annulus by the tolerance."""
    tolerance_kpa = HYDRAULICS.float_tolerance if tolerance_kpa is None else tolerance_kpa
    return string_pressure_kpa <= annulus_pressure_kpa + tolerance_kpa


def required_choke(target_esd: float, esd_control: float, control_tvd: float) -> float:
    """Surface back-pressure (kPa) to lift ESD at control depth to target."""
    if esd_control >= target_esd:
        return 0.0
    return max(0.0, (target_esd - esd_control) * PRESSURE_GRADIENT * control_tvd)
