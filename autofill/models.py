"""
models.py — Typed records for the auto-fill engine

Inputs:
  Week, Rotation, Physician, AssignmentCell, RotationPreference, CalendarEvent,
  ConsecutiveWeekRule

Outputs:
  ScoreBreakdown, ScoredCandidate, AutoFillAssignment, UnfilledCell,
  AutoFillMetrics, AutoFillResult

Map aliases used throughout:
  AvailabilityMap = {physician_id: {week_id: Availability}}
  PreferenceMap   = {physician_id: {rotation_id: RotationPreference}}
  HolidayWeekMap  = {week_id: [holiday_name, ...]}
  ParityScoreMap  = {physician_id: {holiday_name_lower: bias}}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Availability(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class AssignmentSource(Enum):
    MANUAL = "manual"
    MANUAL_ANCHOR = "manual_anchor"
    AUTO = "auto"


FEDERAL_HOLIDAY = "federal_holiday"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Week:
    id: str
    week_number: int


@dataclass(frozen=True)
class Rotation:
    id: str
    cfte_per_week: float
    min_staff: int = 1
    max_consecutive_weeks: int = 1
    sort_order: int = 0
    is_active: bool = True
    name: str = ""
    abbreviation: str = ""


@dataclass(frozen=True)
class Physician:
    id: str
    is_active: bool = True
    initials: str = ""
    active_from_week_id: Optional[str] = None
    active_until_week_id: Optional[str] = None


@dataclass(frozen=True)
class AssignmentCell:
    """One (week, rotation) slot. A bound physician makes the cell fixed."""
    id: str
    week_id: str
    rotation_id: str
    physician_id: Optional[str] = None
    source: Optional[AssignmentSource] = None

    @property
    def is_fixed(self) -> bool:
        return bool(self.physician_id)


@dataclass(frozen=True)
class RotationPreference:
    preference_rank: Optional[int] = None
    avoid: bool = False
    deprioritize: bool = False


@dataclass(frozen=True)
class CalendarEvent:
    week_id: str
    name: str
    category: str = FEDERAL_HOLIDAY
    is_approved: bool = True


@dataclass(frozen=True)
class ConsecutiveWeekRule:
    """Override keyed by physician id/initials and rotation id/abbreviation."""
    physician: str
    rotation: str
    max_consecutive_weeks: int


AvailabilityMap = Dict[str, Dict[str, Availability]]
PreferenceMap = Dict[str, Dict[str, RotationPreference]]
HolidayWeekMap = Dict[str, List[str]]
ParityScoreMap = Dict[str, Dict[str, int]]


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreBreakdown:
    availability: float
    preference: float
    holiday_parity: float
    workload_spread: float
    rotation_variety: float
    gap_enforcement: float
    deprioritize: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "availability": self.availability,
            "preference": self.preference,
            "holiday_parity": self.holiday_parity,
            "workload_spread": self.workload_spread,
            "rotation_variety": self.rotation_variety,
            "gap_enforcement": self.gap_enforcement,
            "deprioritize": self.deprioritize,
        }


@dataclass(frozen=True)
class ScoredCandidate:
    physician_id: str
    total_score: float
    breakdown: ScoreBreakdown
    availability: Availability
    headroom: float


@dataclass(frozen=True)
class AutoFillAssignment:
    cell_id: str
    week_id: str
    rotation_id: str
    physician_id: str
    score: float
    breakdown: ScoreBreakdown
    pass_number: int


@dataclass(frozen=True)
class UnfilledCell:
    cell_id: str
    week_id: str
    rotation_id: str
    reason: str
    rejections: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AutoFillMetrics:
    total_cells: int
    filled_cells: int
    unfilled_cells: int
    avg_score: float
    holiday_parity_score: float
    cfte_std_dev: float
    preferences_satisfied: float
    preferences_violated: float
    workload_std_dev: float
    passes: int = 0


@dataclass
class AutoFillResult:
    assignments: List[AutoFillAssignment]
    unfilled: List[UnfilledCell]
    metrics: AutoFillMetrics
    seed: int = 0
