import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy.interpolate import interp1d

from wellcore.exceptions import InvalidInput
from wellcore.interface import GeometryProvider, TrajectorySampler


# ==========================================
# 1. Section tables
# ==========================================

@dataclass(frozen=True)
class AnnulusSection:
    top_md: float           # m
    bottom_md: float        # m
    inner_diameter: float   # hole / casing ID (m)
    name: str = ""


@dataclass(frozen=True)
class StringSection:
    top_md: float           # m
    bottom_md: float        # m
    outer_diameter: float   # pipe OD (m)
    inner_diameter: float   # pipe ID (m)
    name: str = ""


def _lookup(sections, md):
    """
    Section whose [top, bottom] contains md. Out of range: above the
    first section -> first, otherwise the nearest section above md
    (the last one when md is past the table).
    """
    if not sections:
        return None
    for sec in sections:
        if sec.top_md <= md <= sec.bottom_md:
            return sec
    if md < sections[0].top_md:
        return sections[0]
    above = [sec for sec in sections if sec.top_md <= md]
    return above[-1] if above else sections[-1]


class SectionGeometry(GeometryProvider):
    """
    Geometry provider backed by annulus and drill-string section tables.
    `string_bottom_md` limits how deep the pipe is present (None = everywhere).
    """

    def __init__(self, annulus: Sequence[AnnulusSection], string: Sequence[StringSection],
                 string_bottom_md: Optional[float] = None):
        self.annulus = sorted(annulus, key=lambda s: s.top_md)
        self.string = sorted(string, key=lambda s: s.top_md)
        self.string_bottom_md = string_bottom_md

    def with_string_bottom(self, md: Optional[float]) -> "SectionGeometry":
        return SectionGeometry(self.annulus, self.string, md)

    def _pipe_present(self, md):
        return self.string_bottom_md is None or md <= self.string_bottom_md

    def hole_od(self, md: float) -> float:
        sec = _lookup(self.annulus, md)
        return max(sec.inner_diameter, 0.0) if sec else 0.0

    def pipe_od(self, md: float) -> float:
        if not self._pipe_present(md):
            return 0.0
        sec = _lookup(self.string, md)
        return max(sec.outer_diameter, 0.0) if sec else 0.0

    def pipe_id(self, md: float) -> float:
        if not self._pipe_present(md):
            return 0.0
        sec = _lookup(self.string, md)
        return max(sec.inner_diameter, 0.0) if sec else 0.0

    # ------------------------------------------
    # Areas and volumes
    # ------------------------------------------

    def annulus_area(self, md: float) -> float:
        dh = self.hole_od(md)
        dp = self.pipe_od(md)
        return max(0.0, math.pi * (dh * dh - dp * dp) / 4.0)

    def _breakpoints(self, top, bottom):
        pts = {top, bottom}
        for sec in list(self.annulus) + list(self.string):
            for d in (sec.top_md, sec.bottom_md):
                if top < d < bottom:
                    pts.add(d)
        if self.string_bottom_md is not None and top < self.string_bottom_md < bottom:
            pts.add(self.string_bottom_md)
        return sorted(pts)

    def volume_in_annulus(self, top_md: float, bottom_md: float) -> float:
        """Annular volume (m3) between two MDs, exact for the section tables."""
        top, bottom = min(top_md, bottom_md), max(top_md, bottom_md)
        if bottom - top <= 0:
            return 0.0
        pts = self._breakpoints(top, bottom)
        return sum(self.annulus_area(0.5 * (a + b)) * (b - a) for a, b in zip(pts[:-1], pts[1:]))

    def length_for_annulus_volume(self, volume: float, top_md: float = 0.0) -> float:
        """
        MD length below `top_md` holding `volume` m3 of annulus.
        Past the end of the tables the last area is extended downward.
        """
        if volume <= 0:
            return 0.0
        table_end = max([s.bottom_md for s in list(self.annulus) + list(self.string)] + [top_md])
        pts = self._breakpoints(top_md, table_end) if table_end > top_md else [top_md]

        remaining = volume
        for a, b in zip(pts[:-1], pts[1:]):
            area = self.annulus_area(0.5 * (a + b))
            capacity = area * (b - a)
            if capacity >= remaining and area > 0:
                return a + remaining / area - top_md
            remaining -= capacity

        tail_area = self.annulus_area(pts[-1] + 1.0)
        if tail_area <= 0:
            raise InvalidInput(f"Annulus has no capacity below {pts[-1]:.1f} m to hold {volume:.3f} m3")
        return pts[-1] + remaining / tail_area - top_md


# ==========================================
# 2. Trajectory samplers
# ==========================================

@dataclass(frozen=True)
class SurveyStation:
    md: float
    tvd: Optional[float] = None
    inclination: Optional[float] = None     # deg
    azimuth: Optional[float] = None         # deg


class SurveyTvdSampler(TrajectorySampler):
    """
    MD -> TVD by linear interpolation over survey stations, clamped to
    the first/last station outside the survey. Stations without TVD count
    as vertical; an inclined station without TVD is rejected.
    """

    def __init__(self, stations: Sequence[SurveyStation]):
        for st in stations:
            if st.tvd is None and st.inclination:
                raise InvalidInput(f"Survey station at {st.md:.1f} m MD is inclined ({st.inclination} deg) "
                                   f"but has no TVD; supply TVD for deviated surveys")
        md_arr: List[float] = []
        tvd_arr: List[float] = []
        for st in sorted(stations, key=lambda s: s.md):
            if md_arr and st.md <= md_arr[-1]:
                continue
            md_arr.append(st.md)
            tvd_arr.append(st.md if st.tvd is None else st.tvd)
        self.md = np.asarray(md_arr, dtype=float)
        self.tvd = np.asarray(tvd_arr, dtype=float)

        self._interp = None
        if len(self.md) >= 2:
            self._interp = interp1d(self.md, self.tvd, kind="linear", bounds_error=False,
                                    fill_value=(self.tvd[0], self.tvd[-1]), assume_sorted=True)

    def tvd_of_md(self, md: float) -> float:
        if len(self.md) == 0:
            return md
        if self._interp is None:
            return float(self.tvd[0])
        return float(self._interp(md))

    def __len__(self):
        return len(self.md)


class VerticalTrajectory(TrajectorySampler):
    def tvd_of_md(self, md: float) -> float:
        return md
