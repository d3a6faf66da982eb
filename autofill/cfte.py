"""
cfte.py — cFTE arithmetic

  clinic cFTE   = Σ half_days_per_week × cfte_per_half_day × active_weeks
  rotation cFTE = Σ cfte_per_week × weeks assigned
  total         = clinic + rotation, compared against the physician's target
"""

from dataclasses import dataclass
from typing import Dict, Iterable

from .schedule_config import CFTE_OVER_RATIO, CFTE_UNDER_RATIO

STATUS_COMPLIANT = "compliant"
STATUS_UNDER = "under"
STATUS_OVER = "over"


@dataclass(frozen=True)
class ClinicAssignment:
    half_days_per_week: float
    cfte_per_half_day: float
    active_weeks: int


@dataclass(frozen=True)
class RotationLoad:
    cfte_per_week: float
    week_count: int


def round4(value: float) -> float:
    return round(value * 10000) / 10000


def calculate_clinic_cfte(clinics: Iterable[ClinicAssignment]) -> float:
    return sum(c.half_days_per_week * c.cfte_per_half_day * c.active_weeks for c in clinics)


def calculate_rotation_cfte(rotations: Iterable[RotationLoad]) -> float:
    return sum(r.cfte_per_week * r.week_count for r in rotations)


def calculate_total_cfte(
    clinics: Iterable[ClinicAssignment],
    rotations: Iterable[RotationLoad],
) -> Dict[str, float]:
    clinic = calculate_clinic_cfte(clinics)
    rotation = calculate_rotation_cfte(rotations)
    return {
        "clinic_cfte": round4(clinic),
        "rotation_cfte": round4(rotation),
        "total_cfte": round4(clinic + rotation),
    }


def get_cfte_status(total_cfte: float, target_cfte: float) -> str:
    """'under' below 95% of target, 'over' above 105%, else 'compliant'."""
    if target_cfte <= 0:
        return STATUS_OVER if total_cfte > 0 else STATUS_COMPLIANT
    ratio = total_cfte / target_cfte
    if ratio < CFTE_UNDER_RATIO:
        return STATUS_UNDER
    if ratio > CFTE_OVER_RATIO:
        return STATUS_OVER
    return STATUS_COMPLIANT
