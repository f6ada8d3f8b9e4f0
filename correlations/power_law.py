from typing import Optional

from wellcore.interface import AnnularLossCorrelation, RheologyModel
from wellcore.lib.rheology import (PowerLawParams, ShearGradient, apl_power_law,
                                   derive_consistency_index, wall_shear_gradient)


class PowerLawRheology(RheologyModel, AnnularLossCorrelation):
    """
    Power-Law fluid: K/n from Fann 600/300, Mooney-Rabinowitsch wall shear,
    Metzner-Reed Reynolds number. Default model of the swab/surge estimator.
    """

    def __init__(self, dial_to_pa: Optional[float] = None, shear_rate_600: Optional[float] = None,
                 laminar_reynolds: Optional[float] = None):
        self.dial_to_pa = dial_to_pa
        self.shear_rate_600 = shear_rate_600
        self.laminar_reynolds = laminar_reynolds

    @classmethod
    def get_metadata(cls):
        return {
            "id": cls.__name__,
            "name": "Power-Law (Mooney-Rabinowitsch)",
            "description": "Annular friction and swab/surge gradient from K/n or Fann 600/300 readings",
            "kind": "rheology",
            "params": {
                "k": {"type": "number", "label": "Consistency index K (Pa.s^n)"},
                "n": {"type": "number", "label": "Flow index n"},
                "dial600": {"type": "number", "label": "Fann 600 rpm reading"},
                "dial300": {"type": "number", "label": "Fann 300 rpm reading"}
            }
        }

    def consistency_from_dials(self, dial600: float, dial300: float) -> PowerLawParams:
        return derive_consistency_index(dial600, dial300, self.dial_to_pa, self.shear_rate_600)

    def wall_shear_gradient(self, density, k, n, velocity, hydraulic_diameter) -> ShearGradient:
        return wall_shear_gradient(density, k, n, velocity, hydraulic_diameter, self.laminar_reynolds)

    def annular_loss(self, density, length, flow_rate, hole_diameter, pipe_diameter, params=None):
        params = params or {}
        if "k" in params and "n" in params:
            pl = PowerLawParams(float(params["k"]), float(params["n"]))
        else:
            pl = self.consistency_from_dials(params.get("dial600"), params.get("dial300"))
        return apl_power_law(density, length, flow_rate, hole_diameter, pipe_diameter, pl.k, pl.n)
