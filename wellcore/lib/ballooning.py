import logging
import math
from dataclasses import asdict, dataclass
from typing import Optional

from wellcore.interface import TrajectorySampler
from wellcore.lib.geometry import SectionGeometry
from wellcore.lib.hydraulics import PRESSURE_GRADIENT

logger = logging.getLogger(__name__)

MIN_DEFICIT = 0.001     # m3
WALK_STEP = 1.0         # m


@dataclass(frozen=True)
class BallooningResult:
    adjusted_sabp_kpa: float        # SABP to hold with the volume actually placed
    delta_sabp_kpa: float           # extra SABP above plan (>= 0 for a heavier kill mud)
    volume_deficit: float           # m3, simulated minus actual
    deficit_tvd_height: float       # m
    pressure_loss_kpa: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_ballooning(simulated_sabp: float, simulated_kill_volume: float, actual_kill_volume: float,
                         kill_density: float, original_density: float, geometry: SectionGeometry,
                         trajectory: Optional[TrajectorySampler] = None) -> BallooningResult:
    """
    SABP correction when ballooning kept part of the kill mud out of the hole.
    The missing volume is taken as original mud sitting at the top of the
    annulus, which gives the largest correction.
    """
    deficit = max(0.0, simulated_kill_volume - actual_kill_volume)
    if deficit <= MIN_DEFICIT:
        return BallooningResult(simulated_sabp, 0.0, 0.0, 0.0, 0.0)

    md_length = geometry.length_for_annulus_volume(deficit, 0.0)
    tvd = trajectory.tvd_of_md if trajectory is not None else (lambda md: md)

    density_delta = kill_density - original_density
    count = max(1, int(math.ceil(md_length / WALK_STEP)))
    step = md_length / count

    total_loss = 0.0
    total_height = 0.0
    for i in range(count):
        d_tvd = max(0.0, tvd((i + 1) * step) - tvd(i * step))
        total_height += d_tvd
        total_loss += density_delta * PRESSURE_GRADIENT * d_tvd

    logger.info("Ballooning: deficit %.3f m3 over %.1f m MD, SABP +%.1f kPa", deficit, md_length, total_loss)
    return BallooningResult(
        adjusted_sabp_kpa=simulated_sabp + total_loss,
        delta_sabp_kpa=total_loss,
        volume_deficit=deficit,
        deficit_tvd_height=total_height,
        pressure_loss_kpa=total_loss,
    )
