from wellcore.exceptions import InvalidInput
from wellcore.interface import AnnularLossCorrelation
from wellcore.lib.rheology import apl_bingham


class BinghamPlastic(AnnularLossCorrelation):
    """
    Bingham-Plastic annular loss: 4*YP/Dh + 8*PV*V/Dh^2.
    Needs pv_cp (plastic viscosity, cP) and yp_pa (yield point, Pa).
    """

    @classmethod
    def get_metadata(cls):
        return {
            "id": cls.__name__,
            "name": "Bingham-Plastic",
            "description": "Annular friction from plastic viscosity and yield point",
            "kind": "apl",
            "params": {
                "pv_cp": {"type": "number", "default": 20, "label": "Plastic viscosity (cP)"},
                "yp_pa": {"type": "number", "default": 7, "label": "Yield point (Pa)"}
            }
        }

    def annular_loss(self, density, length, flow_rate, hole_diameter, pipe_diameter, params=None):
        params = params or {}
        try:
            pv = float(params["pv_cp"])
            yp = float(params["yp_pa"])
        except (KeyError, TypeError) as e:
            raise InvalidInput("Bingham correlation needs 'pv_cp' and 'yp_pa'") from e
        return apl_bingham(length, flow_rate, hole_diameter, pipe_diameter, pv, yp)
