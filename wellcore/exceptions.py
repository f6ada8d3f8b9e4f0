"""
Error taxonomy for the hydraulics core.

All errors derive from ValueError so callers that already catch bad
numeric input keep working.
"""
from typing import Optional


class HydraulicsError(ValueError):
    """Root of every error raised by the calculation core."""


class InvalidInput(HydraulicsError):
    """Empty layer set, non-positive step/speed/flow, degenerate geometry."""


class InvalidRheologyInput(InvalidInput):
    """Viscometer dial readings that cannot produce K/n."""


class MissingRheology(InvalidInput):
    """No K/n could be resolved for a depth interval."""

    def __init__(self, top_md: float, bottom_md: float, message: Optional[str] = None):
        self.top_md = top_md
        self.bottom_md = bottom_md
        if message is None:
            message = (f"No rheology available for layer {top_md:.1f}-{bottom_md:.1f} m MD: "
                       f"provide K/n, per-layer dial readings or global dial readings")
        super().__init__(message)


class CorrelationNotFound(HydraulicsError):
    pass
