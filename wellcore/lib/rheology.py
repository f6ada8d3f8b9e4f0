import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from wellcore.exceptions import InvalidRheologyInput, MissingRheology
from wellcore.settings import HYDRAULICS

# ==========================================
# 1. Numeric floors
# ==========================================
MIN_DIAMETER = 1e-6     # m
MIN_AREA = 1e-9         # m2
MIN_VELOCITY = 1e-12    # m/s


# ==========================================
# 2. Result types
# ==========================================

@dataclass(frozen=True)
class PowerLawParams:
    k: float    # consistency index (Pa.s^n)
    n: float    # flow behaviour index


@dataclass(frozen=True)
class ShearGradient:
    gradient: float     # Pa/m
    is_laminar: bool
    reynolds: float     # generalized (Metzner-Reed)


# ==========================================
# 3. Power-Law
# ==========================================

def derive_consistency_index(dial600: float, dial300: float,
                             dial_to_pa: Optional[float] = None,
                             shear_rate_600: Optional[float] = None) -> PowerLawParams:
    """
    Fann 600/300 dial readings -> (K, n).

    n = ln(d600/d300) / ln2
    K = tau600 / gamma600^n, tau600 = dial_to_pa * d600
    """
    if dial600 is None or dial300 is None or dial600 <= 0 or dial300 <= 0:
        raise InvalidRheologyInput(f"Dial readings must be > 0 (got 600={dial600}, 300={dial300})")
    if dial600 <= dial300:
        raise InvalidRheologyInput(
            f"Dial 600 must exceed dial 300 for a shear-thinning fluid (got 600={dial600}, 300={dial300})")

    dial_to_pa = HYDRAULICS.dial_to_pa if dial_to_pa is None else dial_to_pa
    shear_rate_600 = HYDRAULICS.shear_rate_600 if shear_rate_600 is None else shear_rate_600

    n = math.log(dial600 / dial300) / math.log(2.0)
    tau600 = dial_to_pa * dial600
    k = tau600 / shear_rate_600 ** n
    return PowerLawParams(k=k, n=n)


def wall_shear_gradient(density: float, k: float, n: float, velocity: float,
                        hydraulic_diameter: float,
                        laminar_reynolds: Optional[float] = None) -> ShearGradient:
    """Mooney-Rabinowitsch wall shear with Metzner-Reed Reynolds number."""
    if k <= 0 or n <= 0:
        raise InvalidRheologyInput(f"K and n must be > 0 (got K={k}, n={n})")
    laminar_reynolds = HYDRAULICS.laminar_reynolds if laminar_reynolds is None else laminar_reynolds

    dh = max(hydraulic_diameter, MIN_DIAMETER)
    v = max(velocity, MIN_VELOCITY)

    gamma_w = ((3.0 * n + 1.0) / (4.0 * n)) * (8.0 * v / dh)
    tau_w = k * gamma_w ** n
    gradient = 4.0 * tau_w / dh
    reynolds = density * v ** (2.0 - n) * dh ** n / (k * 8.0 ** (n - 1.0))
    return ShearGradient(gradient=gradient, is_laminar=reynolds < laminar_reynolds, reynolds=reynolds)


def annulus_area(hole_diameter: float, pipe_diameter: float) -> float:
    return math.pi / 4.0 * (hole_diameter ** 2 - pipe_diameter ** 2)


def apl_power_law(density: float, length: float, flow_rate: float,
                  hole_diameter: float, pipe_diameter: float, k: float, n: float) -> float:
    """Annular friction loss (kPa) of one section from K/n, flow in m3/min."""
    if k <= 0 or n <= 0 or flow_rate <= 0:
        return 0.0
    gap = hole_diameter - pipe_diameter
    if gap <= MIN_DIAMETER:
        return 0.0
    area = annulus_area(hole_diameter, pipe_diameter)
    if area <= MIN_AREA:
        return 0.0
    velocity = flow_rate / 60.0 / area
    return wall_shear_gradient(density, k, n, velocity, gap).gradient * length / 1000.0


def pipe_flow_apl(density: float, length: float, flow_rate: float,
                  pipe_id: float, k: float, n: float) -> float:
    """Friction loss (kPa) inside the pipe bore."""
    if k <= 0 or n <= 0 or flow_rate <= 0 or pipe_id <= MIN_DIAMETER:
        return 0.0
    area = math.pi / 4.0 * pipe_id ** 2
    velocity = flow_rate / 60.0 / area
    return wall_shear_gradient(density, k, n, velocity, pipe_id).gradient * length / 1000.0


# ==========================================
# 4. Bingham-Plastic and calibrated empirical
# ==========================================

def bingham_gradient(plastic_viscosity: float, yield_point: float,
                     velocity: float, hydraulic_diameter: float) -> float:
    """4*YP/Dh + 8*PV*V/Dh^2 (Pa/m); PV in Pa.s, YP in Pa."""
    dh = max(hydraulic_diameter, MIN_DIAMETER)
    return 4.0 * yield_point / dh + 8.0 * plastic_viscosity * velocity / dh ** 2


def apl_bingham(length: float, flow_rate: float, hole_diameter: float, pipe_diameter: float,
                pv_cp: float, yp_pa: float) -> float:
    """Bingham annular loss (kPa); PV in cP, YP in Pa, flow in m3/min."""
    gap = hole_diameter - pipe_diameter
    if gap <= MIN_DIAMETER:
        return 0.0
    area = annulus_area(hole_diameter, pipe_diameter)
    if area <= MIN_AREA:
        return 0.0
    velocity = flow_rate / 60.0 / area
    return bingham_gradient(pv_cp / 1000.0, yp_pa, velocity, gap) * length / 1000.0


def apl_simplified(density: float, length: float, flow_rate: float,
                   hole_diameter: float, pipe_diameter: float,
                   k_empirical: Optional[float] = None) -> float:
    """
    Calibrated single-constant APL (kPa):
        K * rho * L * Q^2 / (Dh - Dp)
    """
    k_empirical = HYDRAULICS.apl_empirical_k if k_empirical is None else k_empirical
    gap = hole_diameter - pipe_diameter
    if gap <= MIN_DIAMETER or flow_rate <= 0:
        return 0.0
    return k_empirical * density * length * flow_rate ** 2 / gap


# ==========================================
# 5. Rheology resolution (per layer -> global -> error)
# ==========================================

@dataclass(frozen=True)
class RheologyOverride:
    """Optional per-layer rheology: explicit K/n or dial readings."""
    k: Optional[float] = None
    n: Optional[float] = None
    dial600: Optional[float] = None
    dial300: Optional[float] = None

    @property
    def has_power_law(self) -> bool:
        return self.k is not None and self.n is not None and self.k > 0 and self.n > 0

    @property
    def has_dials(self) -> bool:
        return self.dial600 is not None and self.dial300 is not None


class RheologySource(Enum):
    LAYER_POWER_LAW = "layer_power_law"
    LAYER_DIALS = "layer_dials"
    GLOBAL = "global"
    MISSING = "missing"


@dataclass(frozen=True)
class RheologyResolution:
    source: RheologySource
    params: Optional[PowerLawParams] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.params is not None

    def unwrap(self) -> PowerLawParams:
        if self.error is not None:
            raise self.error
        return self.params


def resolve_rheology(override: Optional[RheologyOverride],
                     global_params: Optional[PowerLawParams],
                     top_md: float, bottom_md: float,
                     from_dials=derive_consistency_index) -> RheologyResolution:
    """
    Priority: layer K/n > layer dials > global params > MissingRheology.
    Never raises; errors are carried in the result.
    """
    if override is not None:
        if override.has_power_law:
            return RheologyResolution(RheologySource.LAYER_POWER_LAW,
                                      PowerLawParams(override.k, override.n))
        if override.has_dials:
            try:
                return RheologyResolution(RheologySource.LAYER_DIALS,
                                          from_dials(override.dial600, override.dial300))
            except InvalidRheologyInput as e:
                return RheologyResolution(RheologySource.LAYER_DIALS, error=e)
    if global_params is not None:
        return RheologyResolution(RheologySource.GLOBAL, global_params)
    return RheologyResolution(RheologySource.MISSING, error=MissingRheology(top_md, bottom_md))
