import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from wellcore.exceptions import HydraulicsError
from wellcore.factory import get_correlation, list_correlations
from wellcore.interface import RheologyModel
from wellcore.lib.ballooning import calculate_ballooning
from wellcore.lib.geometry import (AnnulusSection, SectionGeometry, StringSection, SurveyStation,
                                   SurveyTvdSampler)
from wellcore.lib.hydraulics import (PressureWindow, WindowPoint, annular_velocity, apl_over_depth_range,
                                     bottom_hole_pressure, check_pressure_window, ecd, esd,
                                     required_surface_pressure, required_uniform_density)
from wellcore.lib.layers import FluidLayer, LayerDomain, Placement, slice_layers
from wellcore.lib.rheology import RheologyOverride, derive_consistency_index
from wellcore.lib.swab_surge import SwabSurgeEstimator
from wellcore.lib.trip_in import PocketLayer
from wellcore.lib.tripping import TripDirection, TripInInput, TripPlan, TrippingSimulator
from wellcore.settings import HYDRAULICS

logger = logging.getLogger("wellcore.api")

router = APIRouter()


# ==========================================
# 1. Request models
# ==========================================

class AnnulusSectionIn(BaseModel):
    top_md: float
    bottom_md: float
    inner_diameter: float
    name: str = ""


class StringSectionIn(BaseModel):
    top_md: float
    bottom_md: float
    outer_diameter: float
    inner_diameter: float
    name: str = ""


class RheologyIn(BaseModel):
    k: Optional[float] = None
    n: Optional[float] = None
    dial600: Optional[float] = None
    dial300: Optional[float] = None


class LayerIn(BaseModel):
    density: float
    top_md: float
    bottom_md: float
    placement: str = "annulus"
    rheology: Optional[RheologyIn] = None
    color: Optional[str] = None


class StationIn(BaseModel):
    md: float
    tvd: Optional[float] = None


class PocketLayerIn(BaseModel):
    density: float
    top_md: float
    bottom_md: float
    in_annulus: bool = False


class RheologyRequest(BaseModel):
    dial600: float
    dial300: float


class AplRequest(BaseModel):
    correlation: str = "EmpiricalAPL"
    density: float
    length: float
    flow_rate: float            # m3/min
    hole_diameter: float
    pipe_diameter: float
    params: Dict[str, Any] = {}


class AplDepthRequest(BaseModel):
    to_depth: float
    density: float
    flow_rate: float
    annulus: List[AnnulusSectionIn]
    string: List[StringSectionIn] = []
    surface_friction: float = 0.0
    tvd: Optional[float] = None
    correlation: Optional[str] = None
    params: Dict[str, Any] = {}


class EcdRequest(BaseModel):
    static_density: float
    pressure_kpa: float
    tvd: float
    kind: str = "ecd"           # "ecd" | "esd"


class WindowPointIn(BaseModel):
    tvd: float
    pore_kpa: Optional[float] = None
    frac_kpa: Optional[float] = None


class BhpRequest(BaseModel):
    layers: List[LayerIn]
    depth_md: float
    annulus: List[AnnulusSectionIn] = []
    string: List[StringSectionIn] = []
    flow_rate: float = 0.0          # m3/min
    surface_pressure_kpa: float = 0.0
    survey: List[StationIn] = []
    target_bhp_kpa: Optional[float] = None
    window: List[WindowPointIn] = []
    correlation: Optional[str] = None
    params: Dict[str, Any] = {}


class DensityRequest(BaseModel):
    target_bhp_kpa: float
    tvd: float
    friction_gradient_kpa_m: float = 0.0
    surface_pressure_kpa: float = 0.0


class SwabRequest(BaseModel):
    layers: List[LayerIn]
    annulus: List[AnnulusSectionIn]
    string: List[StringSectionIn]
    rheology: Optional[RheologyIn] = None
    hoist_speed: float
    eccentricity: Optional[float] = None
    step: float = 10.0
    survey: List[StationIn] = []
    safety_factor: Optional[float] = None
    float_open: bool = False
    correlation: str = "PowerLawRheology"


class TripRunRequest(BaseModel):
    direction: str              # "pull_out" | "run_in"
    start_md: float
    end_md: float
    step: float
    layers: List[LayerIn]
    annulus: List[AnnulusSectionIn]
    string: List[StringSectionIn]
    hoist_speed: float
    rheology: Optional[RheologyIn] = None
    eccentricity: Optional[float] = None
    survey: List[StationIn] = []
    lower_limit_md: Optional[float] = None
    control_md: Optional[float] = None
    target_esd: Optional[float] = None
    float_open: bool = False
    integration_step: Optional[float] = None
    include_layers: bool = False


class TripInRequest(BaseModel):
    start_md: float
    end_md: float
    control_md: float
    step: float
    pipe_od: float
    pipe_id: float
    active_density: float
    base_density: float
    target_esd: float
    pocket_layers: List[PocketLayerIn]
    annulus: List[AnnulusSectionIn]
    survey: List[StationIn] = []
    floated: bool = False
    float_sub_md: float = 0.0
    crack_pressure_kpa: float = 0.0
    include_layers: bool = True


class BallooningRequest(BaseModel):
    simulated_sabp: float
    simulated_kill_volume: float
    actual_kill_volume: float
    kill_density: float
    original_density: float
    annulus: List[AnnulusSectionIn]
    string: List[StringSectionIn] = []
    survey: List[StationIn] = []


# ==========================================
# 2. Converters
# ==========================================

def _annulus(items):
    return [AnnulusSection(s.top_md, s.bottom_md, s.inner_diameter, s.name) for s in items]


def _string(items):
    return [StringSection(s.top_md, s.bottom_md, s.outer_diameter, s.inner_diameter, s.name) for s in items]


def _rheology(item: Optional[RheologyIn]) -> Optional[RheologyOverride]:
    if item is None:
        return None
    return RheologyOverride(item.k, item.n, item.dial600, item.dial300)


def _layers(items):
    out = []
    for l in items:
        try:
            placement = Placement(l.placement.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown placement '{l.placement}'")
        out.append(FluidLayer(l.density, l.top_md, l.bottom_md, placement, _rheology(l.rheology), l.color))
    return out


def _eccentricity(value: Optional[float]) -> float:
    return HYDRAULICS.eccentricity if value is None else value


def _trajectory(stations):
    if not stations:
        return None
    return SurveyTvdSampler([SurveyStation(s.md, s.tvd) for s in stations])


def _ok(data):
    return {"status": "success", "data": data}


# ==========================================
# 3. Endpoints
# ==========================================

@router.get("/correlations")
async def get_correlations():
    return list_correlations()


@router.post("/calc/rheology")
async def calc_rheology(req: RheologyRequest):
    """Power-Law K/n from Fann 600/300 readings."""
    try:
        pl = derive_consistency_index(req.dial600, req.dial300)
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok({"k": pl.k, "n": pl.n})


@router.post("/calc/apl")
async def calc_apl(req: AplRequest):
    """APL of one section with a named correlation."""
    try:
        correlation = get_correlation(req.correlation)
        apl = correlation.annular_loss(req.density, req.length, req.flow_rate,
                                       req.hole_diameter, req.pipe_diameter, req.params)
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok({
        "apl_kpa": apl,
        "annular_velocity": annular_velocity(req.flow_rate, req.hole_diameter, req.pipe_diameter),
    })


@router.post("/calc/apl/depth")
async def calc_apl_depth(req: AplDepthRequest):
    """APL aggregated over the section tables from surface to a depth."""
    try:
        correlation = get_correlation(req.correlation) if req.correlation else None
        apl = apl_over_depth_range(req.to_depth, req.density, req.flow_rate,
                                   _annulus(req.annulus), _string(req.string),
                                   req.surface_friction, correlation, req.params)
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    tvd = req.to_depth if req.tvd is None else req.tvd
    return _ok({"apl_kpa": apl, "ecd": ecd(req.density, apl, tvd)})


@router.post("/calc/ecd")
async def calc_ecd(req: EcdRequest):
    if req.kind not in ("ecd", "esd"):
        raise HTTPException(status_code=400, detail="kind must be 'ecd' or 'esd'")
    fn = ecd if req.kind == "ecd" else esd
    return _ok({req.kind: fn(req.static_density, req.pressure_kpa, req.tvd)})


@router.post("/calc/bhp")
async def calc_bhp(req: BhpRequest):
    """BHP from the layer column, friction and SBP; optional required SBP and window check."""
    layers = slice_layers(_layers(req.layers), LayerDomain.ABOVE_BIT, req.depth_md, req.depth_md)
    trajectory = _trajectory(req.survey)
    annulus, string = _annulus(req.annulus), _string(req.string)
    try:
        correlation = get_correlation(req.correlation) if req.correlation else None
        bhp = bottom_hole_pressure(layers, req.depth_md, annulus, string, req.flow_rate,
                                   req.surface_pressure_kpa, trajectory, correlation, req.params)
        data = {"bhp_kpa": bhp}
        if req.target_bhp_kpa is not None:
            data["required_sbp_kpa"] = required_surface_pressure(
                req.target_bhp_kpa, layers, req.depth_md, annulus, string, req.flow_rate,
                trajectory, correlation, req.params)
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if req.window:
        tvd = trajectory.tvd_of_md(req.depth_md) if trajectory is not None else req.depth_md
        window = PressureWindow([WindowPoint(p.tvd, p.pore_kpa, p.frac_kpa) for p in req.window])
        data["window"] = check_pressure_window(bhp, tvd, window).to_dict()
    return _ok(data)


@router.post("/calc/density")
async def calc_density(req: DensityRequest):
    """Uniform mud density reaching a target BHP."""
    return _ok({"density": required_uniform_density(req.target_bhp_kpa, req.tvd,
                                                    req.friction_gradient_kpa_m, req.surface_pressure_kpa)})


@router.post("/swab/estimate")
async def swab_estimate(req: SwabRequest):
    """One swab/surge estimate over the given layers."""
    try:
        model = get_correlation(req.correlation)
        if not isinstance(model, RheologyModel):
            raise HTTPException(status_code=400, detail=f"'{req.correlation}' is not a rheology model")
        estimate = SwabSurgeEstimator(model).estimate(
            _layers(req.layers), _rheology(req.rheology), req.hoist_speed, _eccentricity(req.eccentricity), req.step,
            SectionGeometry(_annulus(req.annulus), _string(req.string)),
            _trajectory(req.survey), req.safety_factor, req.float_open)
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok(estimate.to_dict())


@router.post("/trip/run")
async def trip_run(req: TripRunRequest):
    try:
        direction = TripDirection(req.direction)
    except ValueError:
        raise HTTPException(status_code=400, detail="direction must be 'pull_out' or 'run_in'")

    plan = TripPlan(
        start_md=req.start_md,
        end_md=req.end_md,
        step=req.step,
        direction=direction,
        layers=_layers(req.layers),
        geometry=SectionGeometry(_annulus(req.annulus), _string(req.string)),
        hoist_speed=req.hoist_speed,
        rheology=_rheology(req.rheology),
        eccentricity=_eccentricity(req.eccentricity),
        trajectory=_trajectory(req.survey),
        lower_limit_md=req.lower_limit_md,
        control_md=req.control_md,
        target_esd=req.target_esd,
        float_open=req.float_open,
        integration_step=req.integration_step,
    )
    try:
        steps = TrippingSimulator().run(plan)
    except HydraulicsError as e:
        logger.warning("Trip run rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return _ok([s.to_dict(req.include_layers) for s in steps])


@router.post("/trip/in")
async def trip_in(req: TripInRequest):
    inp = TripInInput(
        start_md=req.start_md,
        end_md=req.end_md,
        control_md=req.control_md,
        step=req.step,
        pipe_od=req.pipe_od,
        pipe_id=req.pipe_id,
        active_density=req.active_density,
        base_density=req.base_density,
        target_esd=req.target_esd,
        pocket_layers=[PocketLayer(p.density, p.top_md, p.bottom_md, p.in_annulus) for p in req.pocket_layers],
        annulus_sections=_annulus(req.annulus),
        trajectory=_trajectory(req.survey),
        floated=req.floated,
        float_sub_md=req.float_sub_md,
        crack_pressure_kpa=req.crack_pressure_kpa,
    )
    try:
        steps = TrippingSimulator().run_trip_in(inp)
    except HydraulicsError as e:
        logger.warning("Trip-in rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return _ok([s.to_dict(req.include_layers) for s in steps])


@router.post("/ballooning")
async def ballooning(req: BallooningRequest):
    try:
        result = calculate_ballooning(
            req.simulated_sabp, req.simulated_kill_volume, req.actual_kill_volume,
            req.kill_density, req.original_density,
            SectionGeometry(_annulus(req.annulus), _string(req.string)),
            _trajectory(req.survey))
    except HydraulicsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok(result.to_dict())
