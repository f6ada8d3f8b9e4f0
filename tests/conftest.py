import pytest

from wellcore.lib.geometry import AnnulusSection, SectionGeometry, StringSection
from wellcore.lib.layers import FluidLayer, Placement
from wellcore.lib.rheology import RheologyOverride


def approx(a, b, tol=1e-9):
    return abs(a - b) <= tol * max(1.0, abs(a), abs(b))


@pytest.fixture
def uniform_geometry():
    """Dh = 0.2 m, Dp = 0.12 m, bore 0.1 m over 0-3000 m."""
    return SectionGeometry(
        [AnnulusSection(0.0, 3000.0, 0.2)],
        [StringSection(0.0, 3000.0, 0.12, 0.1)],
    )


@pytest.fixture
def casing_and_open_hole():
    annulus = [AnnulusSection(0.0, 1000.0, 0.22, "casing"), AnnulusSection(1000.0, 2000.0, 0.2, "open hole")]
    string = [StringSection(0.0, 2000.0, 0.127, 0.108)]
    return annulus, string


@pytest.fixture
def dial_rheology():
    return RheologyOverride(dial600=60.0, dial300=35.0)


@pytest.fixture
def two_fluid_column():
    return [
        FluidLayer(1200.0, 0.0, 1500.0, Placement.ANNULUS),
        FluidLayer(1400.0, 1500.0, 3000.0, Placement.BOTH),
        FluidLayer(1000.0, 0.0, 3000.0, Placement.STRING),
    ]
