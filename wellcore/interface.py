from abc import ABC, abstractmethod
from typing import Optional


class RheologyModel(ABC):
    """
    Base class for Power-Law style correlations used by the swab/surge
    stepping loop. Implementations live in the `correlations` package.
    """

    @abstractmethod
    def consistency_from_dials(self, dial600: float, dial300: float):
        """
        Converts viscometer dial readings into flow parameters.
        :return: PowerLawParams (k in Pa.s^n, n dimensionless)
        """
        pass

    @abstractmethod
    def wall_shear_gradient(self, density: float, k: float, n: float,
                            velocity: float, hydraulic_diameter: float):
        """
        Friction gradient for an annular segment.
        :return: ShearGradient (gradient in Pa/m, laminar flag, generalized Reynolds number)
        """
        pass

    @classmethod
    def get_metadata(cls) -> dict:
        return {
            "id": cls.__name__,
            "name": "Unnamed rheology model",
            "description": "",
            "kind": "rheology",
            "params": {}
        }


class AnnularLossCorrelation(ABC):
    """
    Base class for annular pressure loss (APL) correlations over one section.
    """

    @abstractmethod
    def annular_loss(self, density: float, length: float, flow_rate: float,
                     hole_diameter: float, pipe_diameter: float,
                     params: Optional[dict] = None) -> float:
        """
        :param density: kg/m3
        :param length: section length (m)
        :param flow_rate: m3/min
        :param hole_diameter: hole ID (m)
        :param pipe_diameter: pipe OD (m)
        :param params: correlation specific parameters (e.g. pv/yp, k/n)
        :return: pressure loss in kPa
        """
        pass

    @classmethod
    def get_metadata(cls) -> dict:
        return {
            "id": cls.__name__,
            "name": "Unnamed APL correlation",
            "description": "",
            "kind": "apl",
            "params": {}
        }


class GeometryProvider(ABC):
    """Diameters (m) as a pure function of measured depth."""

    @abstractmethod
    def pipe_od(self, md: float) -> float:
        pass

    @abstractmethod
    def pipe_id(self, md: float) -> float:
        pass

    @abstractmethod
    def hole_od(self, md: float) -> float:
        pass


class TrajectorySampler(ABC):

    @abstractmethod
    def tvd_of_md(self, md: float) -> float:
        pass
