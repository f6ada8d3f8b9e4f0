import logging
import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from wellcore.exceptions import InvalidInput
from wellcore.interface import GeometryProvider, TrajectorySampler
from wellcore.lib.geometry import AnnulusSection, SectionGeometry
from wellcore.lib.hydraulics import PRESSURE_GRADIENT, esd_from_layers, hydrostatic_from_layers
from wellcore.lib.layers import ANNULUS_ONLY, FluidLayer, LayerDomain, Placement, slice_layers
from wellcore.lib.rheology import RheologyOverride
from wellcore.lib.swab_surge import SwabSurgeEstimator
from wellcore.lib.trip_in import (FLOAT_FULL, PocketLayer, classify_float_valve, float_is_closed,
                                  compute_displaced_pocket_layers, required_choke)
from wellcore.settings import HYDRAULICS

logger = logging.getLogger(__name__)

EPS_DEPTH = 1e-9
STRING_PLACEMENTS = frozenset({Placement.STRING, Placement.BOTH})


class TripDirection(Enum):
    PULL_OUT = "pull_out"   # swab, integrates above the bit
    RUN_IN = "run_in"       # surge, integrates below the bit


# ==========================================
# 1. Records
# ==========================================

@dataclass(frozen=True)
class TripStep:
    """One bit-depth sample of a trip run. Volumes in m3, pressures in kPa, densities in kg/m3."""
    index: int
    bit_md: float
    bit_tvd: float
    swab_kpa: float = 0.0                 # swab (pull-out) or surge (run-in) friction
    recommended_sabp_kpa: float = 0.0
    non_laminar: bool = False
    step_fill: float = 0.0
    cumulative_fill: float = 0.0
    step_displacement: float = 0.0
    cumulative_displacement: float = 0.0
    expected_fill_closed: float = 0.0
    expected_fill_open: float = 0.0
    tank_delta: float = 0.0               # cumulative, + means gain
    esd_control: float = 0.0
    esd_bit: float = 0.0
    static_sabp_kpa: float = 0.0
    dynamic_sabp_kpa: float = 0.0
    below_target: bool = False
    float_state: str = FLOAT_FULL.label
    annulus_pressure_kpa: float = 0.0
    string_pressure_kpa: float = 0.0
    differential_pressure_kpa: float = 0.0
    annulus_layers: Tuple = ()
    string_layers: Tuple = ()
    pocket_layers: Tuple = ()

    def to_dict(self, include_layers: bool = True) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                if include_layers:
                    out[f.name] = [layer.to_dict() for layer in value]
                continue
            out[f.name] = value
        return out


@dataclass(frozen=True)
class TripAccumulator:
    """State carried from one depth sample to the next."""
    prev_md: Optional[float] = None
    cumulative_fill: float = 0.0
    cumulative_displacement: float = 0.0
    tank_delta: float = 0.0

    def interval_to(self, md: float) -> float:
        return 0.0 if self.prev_md is None else abs(md - self.prev_md)

    def advance(self, md: float, step_fill: float, step_displacement: float,
                step_tank: float) -> "TripAccumulator":
        return TripAccumulator(
            prev_md=md,
            cumulative_fill=self.cumulative_fill + step_fill,
            cumulative_displacement=self.cumulative_displacement + step_displacement,
            tank_delta=self.tank_delta + step_tank,
        )


def depth_samples(start_md: float, end_md: float, step: float) -> List[float]:
    """start, start +/- step, ... ; the last sample is exactly end_md."""
    if step <= 0:
        raise InvalidInput(f"Step must be > 0 m (got {step})")
    sign = 1.0 if end_md >= start_md else -1.0
    count = int(math.floor(abs(end_md - start_md) / step + EPS_DEPTH))
    samples = [start_md + sign * i * step for i in range(count + 1)]
    if abs(samples[-1] - end_md) <= EPS_DEPTH:
        samples[-1] = end_md
    else:
        samples.append(end_md)
    return samples


# ==========================================
# 2. Inputs
# ==========================================

@dataclass(frozen=True)
class TripPlan:
    """Swab/surge trip: pull-out (descending MD) or run-in (ascending MD)."""
    start_md: float
    end_md: float
    step: float
    direction: TripDirection
    layers: Sequence[FluidLayer]
    geometry: GeometryProvider
    hoist_speed: float                          # m/min
    rheology: Optional[RheologyOverride] = None # global K/n or dials
    eccentricity: float = HYDRAULICS.eccentricity
    trajectory: Optional[TrajectorySampler] = None
    lower_limit_md: Optional[float] = None      # surge window bottom, default deepest layer
    control_md: Optional[float] = None          # default: bit
    target_esd: Optional[float] = None
    float_open: bool = False                    # float pinned open; otherwise it follows the pressures
    integration_step: Optional[float] = None    # default: step
    safety_factor: Optional[float] = None
    placements: frozenset = ANNULUS_ONLY

    def validate(self):
        if self.step <= 0:
            raise InvalidInput(f"Step must be > 0 m (got {self.step})")
        if self.hoist_speed <= 0:
            raise InvalidInput(f"Hoist speed must be > 0 m/min (got {self.hoist_speed})")
        if self.direction is TripDirection.PULL_OUT and self.end_md > self.start_md:
            raise InvalidInput("Pull-out must end shallower than it starts")
        if self.direction is TripDirection.RUN_IN and self.end_md < self.start_md:
            raise InvalidInput("Run-in must end deeper than it starts")


@dataclass(frozen=True)
class TripInInput:
    """Trip-in with pocket-layer displacement and optional floated string."""
    start_md: float
    end_md: float
    control_md: float
    step: float
    pipe_od: float                  # m
    pipe_id: float                  # m
    active_density: float           # mud inside the string (kg/m3)
    base_density: float             # annulus mud at the float (kg/m3)
    target_esd: float               # kg/m3
    pocket_layers: Sequence[PocketLayer]
    annulus_sections: Sequence[AnnulusSection]
    trajectory: Optional[TrajectorySampler] = None
    floated: bool = False
    float_sub_md: float = 0.0
    crack_pressure_kpa: float = 0.0

    def validate(self):
        if self.step <= 0:
            raise InvalidInput(f"Step must be > 0 m (got {self.step})")
        if self.end_md < self.start_md:
            raise InvalidInput("Trip-in must end deeper than it starts")
        if self.pipe_od <= 0 or self.pipe_id < 0 or self.pipe_id >= self.pipe_od:
            raise InvalidInput(f"Invalid pipe size OD={self.pipe_od} ID={self.pipe_id}")
        if self.floated and self.crack_pressure_kpa <= 0:
            raise InvalidInput("Float crack pressure must be > 0 kPa for a floated string")
        if self.floated and self.pipe_id <= 0:
            raise InvalidInput("Floated string needs a pipe ID > 0")


# ==========================================
# 3. Simulator
# ==========================================

def _tvd(trajectory, md):
    return trajectory.tvd_of_md(md) if trajectory is not None else md


class TrippingSimulator:
    """
    Steps the bit through a trip. Each step folds a TripAccumulator
    forward, so samples depend on every earlier sample.
    """

    def __init__(self, estimator: Optional[SwabSurgeEstimator] = None):
        self.estimator = estimator or SwabSurgeEstimator()

    # ------------------------------------------
    # Swab / surge trip
    # ------------------------------------------

    def run(self, plan: TripPlan) -> List[TripStep]:
        plan.validate()
        lower_limit = plan.lower_limit_md
        if lower_limit is None:
            lower_limit = max([layer.deep_md for layer in plan.layers] + [plan.start_md, plan.end_md])

        logger.info("Trip %s %.1f -> %.1f m, step %.1f m",
                    plan.direction.value, plan.start_md, plan.end_md, plan.step)
        steps: List[TripStep] = []
        acc = TripAccumulator()
        for index, md in enumerate(depth_samples(plan.start_md, plan.end_md, plan.step)):
            step, acc = self._swab_step(plan, index, md, lower_limit, acc)
            steps.append(step)
        logger.info("Trip finished: %d steps, tank delta %.3f m3", len(steps), acc.tank_delta)
        return steps

    def _swab_step(self, plan: TripPlan, index: int, md: float, lower_limit: float,
                   acc: TripAccumulator) -> Tuple[TripStep, TripAccumulator]:
        pull_out = plan.direction is TripDirection.PULL_OUT
        traj = plan.trajectory

        # hydrostatics
        control = md if plan.control_md is None else plan.control_md
        column = slice_layers(plan.layers, LayerDomain.ABOVE_BIT, max(md, control), lower_limit,
                              plan.placements)
        string_column = slice_layers(plan.layers, LayerDomain.ABOVE_BIT, md, lower_limit, STRING_PLACEMENTS)
        esd_control = esd_from_layers(column, control, traj)
        esd_bit = esd_from_layers(column, md, traj)
        static_sabp = 0.0
        below_target = False
        if plan.target_esd is not None:
            below_target = esd_control < plan.target_esd
            static_sabp = required_choke(plan.target_esd, esd_control, _tvd(traj, control))

        # float re-evaluated every step: closed while the string cannot outweigh the annulus
        annulus_hp = hydrostatic_from_layers(column, md, traj) + static_sabp
        string_hp = hydrostatic_from_layers(string_column, md, traj)
        float_open = plan.float_open or not float_is_closed(string_hp, annulus_hp)

        # pipe only exists down to the bit
        geom = plan.geometry
        if isinstance(geom, SectionGeometry):
            geom = geom.with_string_bottom(md)

        domain = LayerDomain.ABOVE_BIT if pull_out else LayerDomain.BELOW_BIT
        segments = slice_layers(plan.layers, domain, md, lower_limit, plan.placements)
        swab = recommended = 0.0
        non_laminar = False
        if segments:
            est = self.estimator.estimate(
                segments, plan.rheology, plan.hoist_speed, plan.eccentricity,
                plan.integration_step or plan.step, geom, traj,
                plan.safety_factor, float_open)
            swab, recommended, non_laminar = est.total_kpa, est.recommended_sabp_kpa, est.non_laminar

        if pull_out:
            dynamic_sabp = static_sabp + recommended
        else:
            dynamic_sabp = max(0.0, static_sabp - swab)

        # volumes
        interval = acc.interval_to(md)
        mid = md if acc.prev_md is None else 0.5 * (md + acc.prev_md)
        od = plan.geometry.pipe_od(mid)
        bore = min(plan.geometry.pipe_id(mid), od)
        full_area = math.pi / 4.0 * od * od
        steel_area = math.pi / 4.0 * (od * od - bore * bore)
        step_disp = (steel_area if float_open else full_area) * interval
        if pull_out:
            step_fill = 0.0
            step_tank = -step_disp
        else:
            step_fill = 0.0 if float_open else math.pi / 4.0 * bore * bore * interval
            step_tank = step_disp - step_fill
        acc = acc.advance(md, step_fill, step_disp, step_tank)
        travelled = abs(md - plan.start_md)

        step = TripStep(
            index=index,
            bit_md=md,
            bit_tvd=_tvd(traj, md),
            swab_kpa=swab,
            recommended_sabp_kpa=recommended,
            non_laminar=non_laminar,
            step_fill=step_fill,
            cumulative_fill=acc.cumulative_fill,
            step_displacement=step_disp,
            cumulative_displacement=acc.cumulative_displacement,
            expected_fill_closed=full_area * travelled,
            expected_fill_open=steel_area * travelled,
            tank_delta=acc.tank_delta,
            esd_control=esd_control,
            esd_bit=esd_bit,
            static_sabp_kpa=static_sabp,
            dynamic_sabp_kpa=dynamic_sabp,
            below_target=below_target,
            float_state="OPEN" if float_open else "CLOSED",
            annulus_pressure_kpa=annulus_hp,
            string_pressure_kpa=string_hp,
            differential_pressure_kpa=annulus_hp - string_hp,
            annulus_layers=tuple(column),
            string_layers=tuple(string_column),
            pocket_layers=tuple(slice_layers(plan.layers, LayerDomain.BELOW_BIT, md, lower_limit,
                                             plan.placements)),
        )
        logger.debug("Step %d bit %.1f m: swab %.2f kPa, dynamic SABP %.2f kPa, float %s",
                     index, md, swab, dynamic_sabp, step.float_state)
        return step, acc

    # ------------------------------------------
    # Trip-in with pocket displacement
    # ------------------------------------------

    def run_trip_in(self, inp: TripInInput) -> List[TripStep]:
        inp.validate()
        logger.info("Trip-in %.1f -> %.1f m, step %.1f m, floated=%s",
                    inp.start_md, inp.end_md, inp.step, inp.floated)
        steps: List[TripStep] = []
        acc = TripAccumulator()
        for index, md in enumerate(depth_samples(inp.start_md, inp.end_md, inp.step)):
            step, acc = self._trip_in_step(inp, index, md, acc)
            steps.append(step)
        logger.info("Trip-in finished: %d steps, cumulative fill %.3f m3", len(steps), acc.cumulative_fill)
        return steps

    def _trip_in_step(self, inp: TripInInput, index: int, md: float,
                      acc: TripAccumulator) -> Tuple[TripStep, TripAccumulator]:
        traj = inp.trajectory
        bit_tvd = _tvd(traj, md)
        control_tvd = _tvd(traj, inp.control_md)

        capacity = math.pi / 4.0 * inp.pipe_id ** 2
        steel_area = math.pi / 4.0 * (inp.pipe_od ** 2 - inp.pipe_id ** 2)

        interval = acc.interval_to(md)
        if inp.floated and md > inp.float_sub_md:
            step_fill = 0.0
        else:
            step_fill = capacity * interval
        step_disp = math.pi / 4.0 * inp.pipe_od ** 2 * interval
        acc = acc.advance(md, step_fill, step_disp, step_disp - step_fill)

        pockets = compute_displaced_pocket_layers(md, inp.pocket_layers, inp.annulus_sections,
                                                  inp.pipe_od, traj)
        esd_control = esd_from_layers(pockets, inp.control_md, traj)
        esd_bit = esd_from_layers(pockets, md, traj)
        choke = required_choke(inp.target_esd, esd_control, control_tvd)

        annulus_hp = esd_bit * PRESSURE_GRADIENT * bit_tvd
        if inp.floated and md >= inp.float_sub_md:
            mud_height = acc.cumulative_fill / capacity
            string_hp = inp.active_density * PRESSURE_GRADIENT * _tvd(traj, min(mud_height, md))
            annulus_at_float = inp.base_density * PRESSURE_GRADIENT * _tvd(traj, inp.float_sub_md)
            inside_at_float = (inp.active_density * PRESSURE_GRADIENT
                               * _tvd(traj, min(mud_height, inp.float_sub_md)))
            float_state = classify_float_valve(annulus_at_float - inside_at_float,
                                               inp.crack_pressure_kpa)
        else:
            string_hp = inp.active_density * PRESSURE_GRADIENT * bit_tvd
            float_state = FLOAT_FULL

        step = TripStep(
            index=index,
            bit_md=md,
            bit_tvd=bit_tvd,
            step_fill=step_fill,
            cumulative_fill=acc.cumulative_fill,
            step_displacement=step_disp,
            cumulative_displacement=acc.cumulative_displacement,
            expected_fill_closed=capacity * md,
            expected_fill_open=steel_area * md,
            tank_delta=acc.tank_delta,
            esd_control=esd_control,
            esd_bit=esd_bit,
            static_sabp_kpa=choke,
            dynamic_sabp_kpa=choke,
            below_target=esd_control < inp.target_esd,
            float_state=float_state.label,
            annulus_pressure_kpa=annulus_hp,
            string_pressure_kpa=string_hp,
            differential_pressure_kpa=annulus_hp - string_hp,
            pocket_layers=tuple(pockets),
        )
        logger.debug("Trip-in step %d bit %.1f m: choke %.1f kPa, float %s",
                     index, md, choke, step.float_state)
        return step, acc


# ==========================================
# 4. Export
# ==========================================

def steps_to_frame(steps: Iterable[TripStep]) -> pd.DataFrame:
    """One row per step, scalar columns only."""
    rows = [s.to_dict(include_layers=False) for s in steps]
    columns = [f.name for f in fields(TripStep) if f.name not in ("annulus_layers", "string_layers", "pocket_layers")]
    return pd.DataFrame(rows, columns=columns)
