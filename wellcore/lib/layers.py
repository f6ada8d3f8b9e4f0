from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional

from wellcore.lib.rheology import RheologyOverride

EPS_LENGTH = 1e-9       # m
EPS_DENSITY = 1e-9      # kg/m3


class Placement(Enum):
    ANNULUS = "annulus"
    STRING = "string"
    BOTH = "both"


ANNULUS_ONLY: FrozenSet[Placement] = frozenset({Placement.ANNULUS, Placement.BOTH})
ALL_PLACEMENTS: FrozenSet[Placement] = frozenset(Placement)


class LayerDomain(Enum):
    ABOVE_BIT = "above_bit"     # swab: [surface .. bit]
    BELOW_BIT = "below_bit"     # surge: [bit .. lower limit]


@dataclass(frozen=True)
class FluidLayer:
    """
    Persisted fluid layer. top/bottom orientation is not guaranteed.
    """
    density: float                              # kg/m3
    top_md: float                               # m
    bottom_md: float                            # m
    placement: Placement = Placement.ANNULUS
    rheology: Optional[RheologyOverride] = None
    color: Optional[str] = None
    name: str = ""

    @property
    def shallow_md(self) -> float:
        return min(self.top_md, self.bottom_md)

    @property
    def deep_md(self) -> float:
        return max(self.top_md, self.bottom_md)


@dataclass(frozen=True)
class LayerSegment:
    density: float      # kg/m3
    top_md: float       # m, shallow
    bottom_md: float    # m, deep
    rheology: Optional[RheologyOverride] = None

    @property
    def height(self) -> float:
        return self.bottom_md - self.top_md

    def to_dict(self) -> dict:
        return {"density": self.density, "top_md": self.top_md, "bottom_md": self.bottom_md}


def domain_window(domain: LayerDomain, bit_md: float, lower_limit_md: float):
    if domain is LayerDomain.ABOVE_BIT:
        return 0.0, max(bit_md, 0.0)
    return min(bit_md, lower_limit_md), max(bit_md, lower_limit_md)


def slice_layers(layers: Iterable[FluidLayer], domain: LayerDomain, bit_md: float,
                 lower_limit_md: float, placements: Iterable[Placement] = ANNULUS_ONLY,
                 merge: bool = True) -> List[LayerSegment]:
    """
    Clips layers to the domain window and returns them deep -> shallow.
    With `merge`, touching segments of the same density (and rheology)
    are joined.
    """
    lo, hi = domain_window(domain, bit_md, lower_limit_md)
    wanted = frozenset(placements)

    out: List[LayerSegment] = []
    for layer in layers:
        if layer.placement not in wanted:
            continue
        top = max(lo, layer.shallow_md)
        bottom = min(hi, layer.deep_md)
        if bottom > top + EPS_LENGTH:
            out.append(LayerSegment(layer.density, top, bottom, layer.rheology))

    out.sort(key=lambda s: s.bottom_md, reverse=True)

    if not merge or not out:
        return out

    merged: List[LayerSegment] = []
    cur = out[0]
    for nxt in out[1:]:
        touching = abs(nxt.bottom_md - cur.top_md) < EPS_LENGTH
        same_fluid = abs(cur.density - nxt.density) < EPS_DENSITY and cur.rheology == nxt.rheology
        if touching and same_fluid:
            cur = LayerSegment(cur.density, nxt.top_md, cur.bottom_md, cur.rheology)
        else:
            merged.append(cur)
            cur = nxt
    merged.append(cur)
    return merged
