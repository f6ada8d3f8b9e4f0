import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence, Tuple

from correlations.power_law import PowerLawRheology
from wellcore.exceptions import InvalidInput
from wellcore.interface import GeometryProvider, RheologyModel, TrajectorySampler
from wellcore.lib.rheology import PowerLawParams, RheologyOverride, resolve_rheology
from wellcore.settings import HYDRAULICS

logger = logging.getLogger(__name__)

MIN_PIPE_OD = 0.001     # m
MIN_RADIAL_GAP = 0.0001 # m
MIN_ANNULUS_AREA = 1e-12


@dataclass(frozen=True)
class SwabSegment:
    md: float                   # m, shallow end of the sub-segment
    tvd: float                  # m, at sub-segment midpoint (0 without trajectory)
    hydraulic_diameter: float   # m
    velocity: float             # m/s
    gradient: float             # Pa/m
    cumulative_kpa: float
    is_laminar: bool
    reynolds: float


@dataclass(frozen=True)
class SwabEstimate:
    segments: Tuple[SwabSegment, ...]
    total_kpa: float
    recommended_sabp_kpa: float
    non_laminar: bool

    def to_dict(self) -> dict:
        return {
            "total_kpa": self.total_kpa,
            "recommended_sabp_kpa": self.recommended_sabp_kpa,
            "non_laminar": self.non_laminar,
            "segments": [asdict(s) for s in self.segments],
        }


class SwabSurgeEstimator:
    """
    Integrates the wall-shear friction gradient along a fluid column while
    pipe moves. The same loop gives swab (pull-out) and surge (run-in).
    """

    def __init__(self, rheology: Optional[RheologyModel] = None):
        if rheology is None:
            rheology = PowerLawRheology()
        self.rheology = rheology

    def _global_params(self, rheology: Optional[RheologyOverride]) -> Optional[PowerLawParams]:
        if rheology is None:
            return None
        if rheology.has_power_law:
            return PowerLawParams(rheology.k, rheology.n)
        if rheology.has_dials:
            return self.rheology.consistency_from_dials(rheology.dial600, rheology.dial300)
        return None

    def estimate(self, layers: Sequence, rheology: Optional[RheologyOverride],
                 hoist_speed: float, eccentricity: float, step: float,
                 geometry: GeometryProvider, trajectory: Optional[TrajectorySampler] = None,
                 safety_factor: Optional[float] = None, float_open: bool = False) -> SwabEstimate:
        """
        :param layers: segments with density/top_md/bottom_md and optional `rheology` override
        :param rheology: global K/n or dial readings, used where a layer has none
        :param hoist_speed: pipe speed (m/min)
        :param eccentricity: velocity multiplier, values below 1 count as 1
        :param step: integration step (m)
        """
        if not layers:
            raise InvalidInput("No layers to integrate")
        if hoist_speed <= 0:
            raise InvalidInput(f"Hoist speed must be > 0 m/min (got {hoist_speed})")
        if step <= 0:
            raise InvalidInput(f"Integration step must be > 0 m (got {step})")
        safety_factor = HYDRAULICS.swab_safety_factor if safety_factor is None else safety_factor

        global_params = self._global_params(rheology)

        # deep -> shallow, each with its resolved K/n
        ordered: List[Tuple[float, float, float, PowerLawParams]] = []
        for layer in layers:
            shallow = min(layer.top_md, layer.bottom_md)
            deep = max(layer.top_md, layer.bottom_md)
            resolution = resolve_rheology(getattr(layer, "rheology", None), global_params, shallow, deep,
                                          from_dials=self.rheology.consistency_from_dials)
            ordered.append((layer.density, deep, shallow, resolution.unwrap()))
        ordered.sort(key=lambda t: t[1], reverse=True)

        pipe_velocity = hoist_speed / 60.0
        ecc = max(eccentricity, 1.0)
        segments: List[SwabSegment] = []
        cumulative_pa = 0.0
        any_non_laminar = False

        for density, deep, shallow, pl in ordered:
            md = deep
            while md > shallow + 1e-12:
                nxt = max(md - step, shallow)
                seg_len = md - nxt
                mid = 0.5 * (md + nxt)

                d_out = max(geometry.pipe_od(mid), MIN_PIPE_OD)
                d_hole = max(geometry.hole_od(mid), d_out + MIN_RADIAL_GAP)
                dh = max(d_hole - d_out, 1e-6)

                area_ann = math.pi * (d_hole ** 2 - d_out ** 2) / 4.0
                if area_ann <= MIN_ANNULUS_AREA:
                    md = nxt
                    continue

                if float_open:
                    d_in = min(max(geometry.pipe_id(mid), 0.0), d_out)
                    area_disp = math.pi * (d_out ** 2 - d_in ** 2) / 4.0
                else:
                    area_disp = math.pi * d_out ** 2 / 4.0

                velocity = max(pipe_velocity * (area_disp / area_ann) * ecc, 1e-12)
                res = self.rheology.wall_shear_gradient(density, pl.k, pl.n, velocity, dh)
                cumulative_pa += res.gradient * seg_len
                if not res.is_laminar:
                    any_non_laminar = True

                segments.append(SwabSegment(
                    md=nxt,
                    tvd=trajectory.tvd_of_md(mid) if trajectory is not None else 0.0,
                    hydraulic_diameter=dh,
                    velocity=velocity,
                    gradient=res.gradient,
                    cumulative_kpa=cumulative_pa / 1000.0,
                    is_laminar=res.is_laminar,
                    reynolds=res.reynolds,
                ))
                md = nxt

        total_kpa = cumulative_pa / 1000.0
        logger.debug("Swab/surge estimate: %d segments, total %.2f kPa", len(segments), total_kpa)
        return SwabEstimate(
            segments=tuple(segments),
            total_kpa=total_kpa,
            recommended_sabp_kpa=total_kpa * safety_factor,
            non_laminar=any_non_laminar,
        )
