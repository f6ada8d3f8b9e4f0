import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd
import yaml

from wellcore.exceptions import InvalidInput
from wellcore.lib.geometry import (AnnulusSection, SectionGeometry, StringSection, SurveyStation,
                                   SurveyTvdSampler)
from wellcore.lib.layers import FluidLayer, Placement
from wellcore.lib.rheology import RheologyOverride

logger = logging.getLogger(__name__)

# header aliases accepted in survey CSV files
MD_COLUMNS = ("md", "md_m", "measured_depth", "depth")
TVD_COLUMNS = ("tvd", "tvd_m", "true_vertical_depth")
INC_COLUMNS = ("inc", "inclination", "incl")
AZI_COLUMNS = ("azi", "azimuth", "az")


@dataclass
class WellCase:
    """Read-only well context: section tables, fluid layers and survey."""
    name: str = ""
    annulus: List[AnnulusSection] = field(default_factory=list)
    string: List[StringSection] = field(default_factory=list)
    layers: List[FluidLayer] = field(default_factory=list)
    survey: List[SurveyStation] = field(default_factory=list)

    def geometry(self, string_bottom_md: Optional[float] = None) -> SectionGeometry:
        return SectionGeometry(self.annulus, self.string, string_bottom_md)

    def trajectory(self) -> Optional[SurveyTvdSampler]:
        return SurveyTvdSampler(self.survey) if self.survey else None


# ==========================================
# 1. Record parsing
# ==========================================

def _rheology(raw) -> Optional[RheologyOverride]:
    if not raw:
        return None
    return RheologyOverride(k=raw.get("k"), n=raw.get("n"),
                            dial600=raw.get("dial600"), dial300=raw.get("dial300"))


def parse_layer(raw: dict) -> FluidLayer:
    try:
        placement = Placement(str(raw.get("placement", "annulus")).lower())
    except ValueError as e:
        raise InvalidInput(f"Unknown layer placement: {raw.get('placement')}") from e
    return FluidLayer(
        density=float(raw["density"]),
        top_md=float(raw["top_md"]),
        bottom_md=float(raw["bottom_md"]),
        placement=placement,
        rheology=_rheology(raw.get("rheology")),
        color=raw.get("color"),
        name=raw.get("name", ""),
    )


def parse_annulus_section(raw: dict) -> AnnulusSection:
    return AnnulusSection(float(raw["top_md"]), float(raw["bottom_md"]),
                          float(raw["inner_diameter"]), raw.get("name", ""))


def parse_string_section(raw: dict) -> StringSection:
    return StringSection(float(raw["top_md"]), float(raw["bottom_md"]),
                         float(raw["outer_diameter"]), float(raw["inner_diameter"]),
                         raw.get("name", ""))


def parse_station(raw: dict) -> SurveyStation:
    tvd = raw.get("tvd")
    return SurveyStation(md=float(raw["md"]), tvd=None if tvd is None else float(tvd),
                         inclination=raw.get("inclination"), azimuth=raw.get("azimuth"))


# ==========================================
# 2. Files
# ==========================================

def _pick(columns, aliases):
    for alias in aliases:
        if alias in columns:
            return alias
    return None


def read_survey_csv(path) -> List[SurveyStation]:
    """
    Reads survey stations from CSV. Headers are matched case-insensitively;
    an MD column is required, TVD/inclination/azimuth are optional, but a
    survey with non-zero inclination must carry TVD.
    """
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]

    md_col = _pick(df.columns, MD_COLUMNS)
    if md_col is None:
        raise InvalidInput(f"Survey file {path} has no MD column (expected one of {MD_COLUMNS})")
    tvd_col = _pick(df.columns, TVD_COLUMNS)
    inc_col = _pick(df.columns, INC_COLUMNS)
    azi_col = _pick(df.columns, AZI_COLUMNS)
    if tvd_col is None and inc_col is not None and (df[inc_col].fillna(0.0).abs() > 0).any():
        raise InvalidInput(f"Survey file {path} has inclination data but no TVD column")

    df = df.dropna(subset=[md_col])
    stations = []
    for _, row in df.iterrows():
        tvd = row[tvd_col] if tvd_col is not None else None
        stations.append(SurveyStation(
            md=float(row[md_col]),
            tvd=None if tvd is None or pd.isna(tvd) else float(tvd),
            inclination=float(row[inc_col]) if inc_col is not None and not pd.isna(row[inc_col]) else None,
            azimuth=float(row[azi_col]) if azi_col is not None and not pd.isna(row[azi_col]) else None,
        ))
    logger.info("Loaded %d survey stations from %s", len(stations), path)
    return stations


def load_case(path) -> WellCase:
    """
    Loads a well case from YAML. `survey_csv` (relative to the YAML file)
    may replace the inline `survey` list.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        case = WellCase(
            name=raw.get("name", path.stem),
            annulus=[parse_annulus_section(r) for r in raw.get("annulus", [])],
            string=[parse_string_section(r) for r in raw.get("string", [])],
            layers=[parse_layer(r) for r in raw.get("layers", [])],
            survey=[parse_station(r) for r in raw.get("survey", [])],
        )
    except (KeyError, TypeError) as e:
        raise InvalidInput(f"Malformed well case {path}: {e}") from e

    if raw.get("survey_csv"):
        case.survey = read_survey_csv(path.parent / raw["survey_csv"])

    logger.info("Loaded case '%s': %d annulus, %d string sections, %d layers",
                case.name, len(case.annulus), len(case.string), len(case.layers))
    return case
