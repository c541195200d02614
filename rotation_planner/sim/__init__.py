from __future__ import annotations

from .models import CurvePoint, GaugePoint, LockSegment, SimInput, StaggerResult
from .simulator import (
    BREAK_LOCK_DURATION,
    REGEN_LOCK_DURATION,
    ResourceSimulator,
    calculate_energy_curve,
    calculate_gauge_curve,
    calculate_gauge_curve_for,
    calculate_stagger_curve,
    resolve_gauge_ceiling,
)

__all__ = [
    "CurvePoint",
    "GaugePoint",
    "LockSegment",
    "SimInput",
    "StaggerResult",
    "BREAK_LOCK_DURATION",
    "REGEN_LOCK_DURATION",
    "ResourceSimulator",
    "calculate_energy_curve",
    "calculate_gauge_curve",
    "calculate_gauge_curve_for",
    "calculate_stagger_curve",
    "resolve_gauge_ceiling",
]
