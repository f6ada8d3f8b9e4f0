import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "WELLCORE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "system.yaml"


# ==========================================
# 1. Settings sections
# ==========================================

@dataclass(frozen=True)
class ServiceSettings:
    host: str = "0.0.0.0"
    port: int = 8899


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass(frozen=True)
class HydraulicsSettings:
    gravity: float = 9.81               # m/s2
    dial_to_pa: float = 0.478802        # Pa per dial unit
    shear_rate_600: float = 1022.0      # 1/s
    laminar_reynolds: float = 2100.0
    swab_safety_factor: float = 1.15
    apl_empirical_k: float = 5.0e-05
    min_flow_rate: float = 0.001        # m3/min
    default_pipe_od: float = 0.127      # m
    default_wellbore_id: float = 0.2159 # m
    float_tolerance: float = 5.0        # kPa
    eccentricity: float = 1.0


@dataclass(frozen=True)
class Settings:
    service: ServiceSettings = field(default_factory=ServiceSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    hydraulics: HydraulicsSettings = field(default_factory=HydraulicsSettings)


# ==========================================
# 2. Loading
# ==========================================

def _section(cls, raw):
    if not isinstance(raw, dict):
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return cls(**{k: v for k, v in raw.items() if k in known})


def load_settings(path=None) -> Settings:
    """
    Reads config/system.yaml (or $WELLCORE_CONFIG). Falls back to the
    built-in defaults when the file is missing or unreadable.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Config %s not loaded (%s), using defaults", path, e)
        return Settings()

    return Settings(
        service=_section(ServiceSettings, raw.get("service")),
        logging=_section(LoggingSettings, raw.get("logging")),
        hydraulics=_section(HydraulicsSettings, raw.get("hydraulics")),
    )


SETTINGS = load_settings()
HYDRAULICS = SETTINGS.hydraulics
