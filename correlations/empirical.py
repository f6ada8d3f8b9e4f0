from wellcore.interface import AnnularLossCorrelation
from wellcore.lib.rheology import apl_simplified


class EmpiricalAPL(AnnularLossCorrelation):
    """
    Calibrated single-constant APL: K * rho * L * Q^2 / (Dh - Dp).
    Default correlation for APL aggregated over the section tables.
    """

    @classmethod
    def get_metadata(cls):
        return {
            "id": cls.__name__,
            "name": "Empirical APL",
            "description": "Single-constant annular pressure loss calibrated for m3/min and metres",
            "kind": "apl",
            "params": {
                "k_empirical": {"type": "number", "default": 5.0e-05, "label": "Empirical constant"}
            }
        }

    def annular_loss(self, density, length, flow_rate, hole_diameter, pipe_diameter, params=None):
        k = (params or {}).get("k_empirical")
        return apl_simplified(density, length, flow_rate, hole_diameter, pipe_diameter, k)
