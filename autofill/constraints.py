"""
constraints.py — Audit of an auto-fill result against the calendar invariants

Hard constraints (must NOT violate):
  - DOUBLE_BOOKING: physician holds two cells in one week (fixed + solver)
  - CFTE_CAP: clinic + rotation cFTE exceeds target
  - MAX_CONSECUTIVE: run on one rotation longer than the override/default cap
  - AVOID: solver placed a physician on a rotation they marked avoid
  - RED_WEEK: solver placed a physician in a red week
  - INACTIVE_WINDOW: solver placed a physician outside their active weeks

Soft constraints (report, do not block):
  - UNFILLED_CELL: no eligible physician was left for a cell
  - YELLOW_WEEK: solver fill on a discouraged week
  - DEPRIORITIZED: solver fill on a deprioritized rotation

Fixed cells count toward the calendar-wide checks (double booking, cFTE,
consecutive runs); the placement checks only look at solver-made cells.

Usage:
  checker = ConstraintChecker(weeks, rotations, physicians, ...)
  hard, soft = checker.check_all(cells, result)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .consecutive import ConsecutiveWeekOverrides, longest_consecutive_run
from .models import (
    AssignmentCell,
    Availability,
    AutoFillResult,
    AvailabilityMap,
    Physician,
    PreferenceMap,
    Rotation,
    Week,
)
from .schedule_config import CFTE_EPSILON

logger = logging.getLogger(__name__)


class ConstraintSeverity(Enum):
    HARD = "hard"
    SOFT = "soft"


@dataclass
class ConstraintViolation:
    severity: ConstraintSeverity
    constraint_type: str
    description: str
    week: Optional[str] = None
    physician: Optional[str] = None
    rotation: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.constraint_type}"]
        if self.week:
            parts.append(f"week={self.week}")
        if self.physician:
            parts.append(f"physician={self.physician}")
        if self.rotation:
            parts.append(f"rotation={self.rotation}")
        parts.append(f"→ {self.description}")
        return " | ".join(parts)


@dataclass(frozen=True)
class Placement:
    week_id: str
    rotation_id: str
    physician_id: str
    solver_made: bool


class ConstraintChecker:
    """Validates a calendar (fixed cells + solver result) against hard and soft constraints."""

    def __init__(
        self,
        weeks: List[Week],
        rotations: List[Rotation],
        physicians: List[Physician],
        availability_map: Optional[AvailabilityMap] = None,
        preference_map: Optional[PreferenceMap] = None,
        target_cfte_map: Optional[Dict[str, float]] = None,
        clinic_cfte_map: Optional[Dict[str, float]] = None,
        consecutive_overrides: Optional[ConsecutiveWeekOverrides] = None,
    ):
        self.week_number_by_id = {w.id: w.week_number for w in weeks}
        self.all_week_numbers = sorted(self.week_number_by_id.values())
        self.rotations_by_id = {r.id: r for r in rotations}
        self.physicians_by_id = {p.id: p for p in physicians}
        self.availability_map = availability_map or {}
        self.preference_map = preference_map or {}
        self.target_cfte_map = target_cfte_map or {}
        self.clinic_cfte_map = clinic_cfte_map or {}
        self.overrides = consecutive_overrides or ConsecutiveWeekOverrides()

    # -----------------------------------------------------------------------
    # Placement list
    # -----------------------------------------------------------------------

    @staticmethod
    def placements(cells: List[AssignmentCell], result: AutoFillResult) -> List[Placement]:
        out = [
            Placement(c.week_id, c.rotation_id, c.physician_id, solver_made=False)
            for c in cells if c.is_fixed
        ]
        out.extend(
            Placement(a.week_id, a.rotation_id, a.physician_id, solver_made=True)
            for a in result.assignments
        )
        return out

    # -----------------------------------------------------------------------
    # HARD: calendar-wide
    # -----------------------------------------------------------------------

    def check_double_booking(self, placements: List[Placement]) -> List[ConstraintViolation]:
        """Hard: at most one cell per physician per week."""
        violations = []
        seen: Dict[Tuple[str, str], str] = {}
        for p in placements:
            key = (p.week_id, p.physician_id)
            if key in seen:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.HARD,
                    constraint_type="DOUBLE_BOOKING",
                    description=f"{p.physician_id} holds {seen[key]} and {p.rotation_id} in week {p.week_id}",
                    week=p.week_id,
                    physician=p.physician_id,
                    rotation=p.rotation_id,
                    details={"first_rotation": seen[key]},
                ))
            else:
                seen[key] = p.rotation_id
        return violations

    def check_cfte_cap(self, placements: List[Placement]) -> List[ConstraintViolation]:
        """Hard: clinic + rotation cFTE never above target."""
        rotation_cfte: Dict[str, float] = {}
        for p in placements:
            rotation = self.rotations_by_id.get(p.rotation_id)
            if rotation is None:
                continue
            rotation_cfte[p.physician_id] = rotation_cfte.get(p.physician_id, 0.0) + rotation.cfte_per_week

        violations = []
        for pid, rot_cfte in sorted(rotation_cfte.items()):
            target = self.target_cfte_map.get(pid)
            if target is None:
                continue
            total = self.clinic_cfte_map.get(pid, 0.0) + rot_cfte
            if total > target + CFTE_EPSILON:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.HARD,
                    constraint_type="CFTE_CAP",
                    description=f"{pid} total cFTE {total:.4f} exceeds target {target:.4f}",
                    physician=pid,
                    details={"total": total, "target": target},
                ))
        return violations

    def check_max_consecutive(self, placements: List[Placement]) -> List[ConstraintViolation]:
        """Hard: no run on one rotation longer than the applicable cap."""
        weeks: Dict[Tuple[str, str], List[int]] = {}
        for p in placements:
            wn = self.week_number_by_id.get(p.week_id)
            if wn is not None:
                weeks.setdefault((p.physician_id, p.rotation_id), []).append(wn)

        violations = []
        for (pid, rid), assigned in sorted(weeks.items()):
            rotation = self.rotations_by_id.get(rid)
            if rotation is None:
                continue
            physician = self.physicians_by_id.get(pid, Physician(id=pid))
            cap = self.overrides.get_max_consecutive_weeks(physician, rotation)
            if cap <= 0:
                continue
            run = longest_consecutive_run(self.all_week_numbers, assigned)
            if run > cap:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.HARD,
                    constraint_type="MAX_CONSECUTIVE",
                    description=f"{pid} serves {run} consecutive weeks on {rid} (max {cap})",
                    physician=pid,
                    rotation=rid,
                    details={"run": run, "max": cap, "weeks": sorted(assigned)},
                ))
        return violations

    # -----------------------------------------------------------------------
    # HARD: solver placements
    # -----------------------------------------------------------------------

    def check_solver_placements(self, placements: List[Placement]) -> List[ConstraintViolation]:
        """Hard: avoid, red week and active window for solver-made cells."""
        violations = []
        for p in placements:
            if not p.solver_made:
                continue
            pref = self.preference_map.get(p.physician_id, {}).get(p.rotation_id)
            if pref is not None and pref.avoid:
                violations.append(self._hard("AVOID", f"{p.physician_id} marked {p.rotation_id} avoid", p))
            avail = self.availability_map.get(p.physician_id, {}).get(p.week_id)
            if avail is Availability.RED:
                violations.append(self._hard("RED_WEEK", f"{p.physician_id} is blocked in week {p.week_id}", p))
            if self._outside_window(p):
                violations.append(self._hard(
                    "INACTIVE_WINDOW", f"{p.physician_id} is not active in week {p.week_id}", p,
                ))
        return violations

    def _outside_window(self, p: Placement) -> bool:
        physician = self.physicians_by_id.get(p.physician_id)
        wn = self.week_number_by_id.get(p.week_id)
        if physician is None or wn is None:
            return False
        start = self.week_number_by_id.get(physician.active_from_week_id or "")
        end = self.week_number_by_id.get(physician.active_until_week_id or "")
        return (start is not None and wn < start) or (end is not None and wn > end)

    @staticmethod
    def _hard(kind: str, description: str, p: Placement) -> ConstraintViolation:
        return ConstraintViolation(
            severity=ConstraintSeverity.HARD,
            constraint_type=kind,
            description=description,
            week=p.week_id,
            physician=p.physician_id,
            rotation=p.rotation_id,
        )

    # -----------------------------------------------------------------------
    # SOFT
    # -----------------------------------------------------------------------

    def check_soft(self, result: AutoFillResult) -> List[ConstraintViolation]:
        violations = []
        for cell in result.unfilled:
            violations.append(ConstraintViolation(
                severity=ConstraintSeverity.SOFT,
                constraint_type="UNFILLED_CELL",
                description=f"{cell.rotation_id} in week {cell.week_id} could not be filled: {cell.reason}",
                week=cell.week_id,
                rotation=cell.rotation_id,
                details={"rejections": dict(cell.rejections)},
            ))
        for a in result.assignments:
            avail = self.availability_map.get(a.physician_id, {}).get(a.week_id, Availability.YELLOW)
            if avail is Availability.YELLOW:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.SOFT,
                    constraint_type="YELLOW_WEEK",
                    description=f"{a.physician_id} placed on a discouraged week",
                    week=a.week_id,
                    physician=a.physician_id,
                    rotation=a.rotation_id,
                ))
            pref = self.preference_map.get(a.physician_id, {}).get(a.rotation_id)
            if pref is not None and pref.deprioritize:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.SOFT,
                    constraint_type="DEPRIORITIZED",
                    description=f"{a.physician_id} placed on deprioritized rotation",
                    week=a.week_id,
                    physician=a.physician_id,
                    rotation=a.rotation_id,
                ))
        return violations

    # -----------------------------------------------------------------------
    # Run all checks
    # -----------------------------------------------------------------------

    def check_all(
        self,
        cells: List[AssignmentCell],
        result: AutoFillResult,
    ) -> Tuple[List[ConstraintViolation], List[ConstraintViolation]]:
        """
        Run all hard and soft constraint checks.

        Returns:
            (hard_violations, soft_violations)
        """
        placements = self.placements(cells, result)
        hard: List[ConstraintViolation] = []
        hard.extend(self.check_double_booking(placements))
        hard.extend(self.check_cfte_cap(placements))
        hard.extend(self.check_max_consecutive(placements))
        hard.extend(self.check_solver_placements(placements))
        soft = self.check_soft(result)

        if hard:
            logger.warning(f"Audit found {len(hard)} hard violations")
        return hard, soft
