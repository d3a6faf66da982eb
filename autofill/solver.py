"""
solver.py — Multi-pass greedy auto-fill solver

Cell lifecycle:
  fixed (physician already bound)  counted for conflicts and cFTE, never touched
  open -> filled(physician, score, breakdown, pass)
  open -> unfilled                 after a pass that fills nothing

Algorithm:
  1. Seed running state from the fixed cells (week occupancy, cFTE, per-rotation
     counts, assigned weeks per rotation).
  2. Sort open cells (week, rotation order), shuffle with an RNG seeded from
     the fiscal-year id.
  3. Sweep the remaining open cells; for each, keep physicians passing every
     hard constraint, score them, bind the best (ties -> lowest id), update
     state. Repeat until a sweep makes no assignment.
  4. Optionally run the swap-improvement pass (improve.py).
  5. Compute metrics over fixed + filled + unfilled cells.

The solver never raises for infeasibility; leftover cells are reported in
AutoFillResult.unfilled with per-constraint rejection counts.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .consecutive import ConsecutiveWeekOverrides, would_exceed_max_consecutive_weeks
from .models import (
    AssignmentCell,
    Availability,
    AutoFillAssignment,
    AutoFillMetrics,
    AutoFillResult,
    AvailabilityMap,
    HolidayWeekMap,
    ParityScoreMap,
    Physician,
    PreferenceMap,
    Rotation,
    RotationPreference,
    ScoredCandidate,
    UnfilledCell,
    Week,
)
from .rng import create_seeded_rng, hash_string_to_seed, seeded_shuffle
from .schedule_config import CFTE_EPSILON, DEFAULT_AUTO_FILL_CONFIG, AutoFillConfig
from .scorer import Candidate, ScoringContext, rank_candidates, score_candidate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rejection reasons (hard constraints)
# ---------------------------------------------------------------------------
REASON_RED_WEEK = "red_week"
REASON_INACTIVE_WINDOW = "inactive_window"
REASON_AVOID = "avoid"
REASON_NO_TARGET_CFTE = "no_target_cfte"
REASON_CFTE_CAP = "cfte_cap"
REASON_MAX_CONSECUTIVE = "max_consecutive"
REASON_WEEK_CONFLICT = "week_conflict"

UNFILLED_NO_CANDIDATES = "No eligible physicians after hard constraint filtering"
UNFILLED_NO_PHYSICIANS = "No active physicians in scope"


# ---------------------------------------------------------------------------
# Running state
# ---------------------------------------------------------------------------

@dataclass
class SolverState:
    week_physicians: Dict[str, Set[str]] = field(default_factory=dict)
    week_count_by_physician: Dict[str, int] = field(default_factory=dict)
    rotation_count_by_physician: Dict[str, Dict[str, int]] = field(default_factory=dict)
    assigned_weeks: Dict[str, Dict[str, Set[int]]] = field(default_factory=dict)
    rotation_cfte: Dict[str, float] = field(default_factory=dict)

    def has_week_conflict(self, week_id: str, physician_id: str) -> bool:
        return physician_id in self.week_physicians.get(week_id, set())

    def weeks_on_rotation(self, physician_id: str, rotation_id: str) -> Set[int]:
        return self.assigned_weeks.get(physician_id, {}).get(rotation_id, set())

    def apply(
        self,
        physician_id: str,
        rotation_id: str,
        cfte_per_week: float,
        week_id: str,
        week_number: Optional[int],
    ) -> None:
        self.week_physicians.setdefault(week_id, set()).add(physician_id)
        self.week_count_by_physician[physician_id] = self.week_count_by_physician.get(physician_id, 0) + 1
        rot_counts = self.rotation_count_by_physician.setdefault(physician_id, {})
        rot_counts[rotation_id] = rot_counts.get(rotation_id, 0) + 1
        if week_number is not None:
            self.assigned_weeks.setdefault(physician_id, {}).setdefault(rotation_id, set()).add(week_number)
        self.rotation_cfte[physician_id] = self.rotation_cfte.get(physician_id, 0.0) + cfte_per_week

    def remove(
        self,
        physician_id: str,
        rotation_id: str,
        cfte_per_week: float,
        week_id: str,
        week_number: Optional[int],
    ) -> None:
        self.week_physicians.get(week_id, set()).discard(physician_id)
        self.week_count_by_physician[physician_id] = self.week_count_by_physician.get(physician_id, 1) - 1
        rot_counts = self.rotation_count_by_physician.setdefault(physician_id, {})
        rot_counts[rotation_id] = rot_counts.get(rotation_id, 1) - 1
        if week_number is not None:
            self.assigned_weeks.get(physician_id, {}).get(rotation_id, set()).discard(week_number)
        self.rotation_cfte[physician_id] = self.rotation_cfte.get(physician_id, 0.0) - cfte_per_week


# ---------------------------------------------------------------------------
# Solver
# ---------------------------------------------------------------------------

class AutoFillSolver:
    """
    Holds lookups and running state for one run. Use run_auto_fill() unless
    you need the intermediate state (improve.py does).
    """

    def __init__(
        self,
        weeks: List[Week],
        rotations: List[Rotation],
        physicians: List[Physician],
        cells: List[AssignmentCell],
        availability_map: Optional[AvailabilityMap] = None,
        preference_map: Optional[PreferenceMap] = None,
        target_cfte_map: Optional[Dict[str, float]] = None,
        clinic_cfte_map: Optional[Dict[str, float]] = None,
        holiday_weeks: Optional[HolidayWeekMap] = None,
        parity_scores: Optional[ParityScoreMap] = None,
        config: AutoFillConfig = DEFAULT_AUTO_FILL_CONFIG,
        fiscal_year_id: str = "",
        consecutive_overrides: Optional[ConsecutiveWeekOverrides] = None,
    ):
        self.config = config
        self.fiscal_year_id = fiscal_year_id
        self.availability_map = availability_map or {}
        self.preference_map = preference_map or {}
        self.target_cfte_map = target_cfte_map or {}
        self.clinic_cfte_map = clinic_cfte_map or {}
        self.holiday_weeks = holiday_weeks or {}
        self.parity_scores = parity_scores or {}
        self.overrides = consecutive_overrides or ConsecutiveWeekOverrides()

        self.week_number_by_id: Dict[str, int] = {w.id: w.week_number for w in weeks}
        self.all_week_numbers: List[int] = sorted({w.week_number for w in weeks})
        self.rotations_by_id: Dict[str, Rotation] = {r.id: r for r in rotations}
        self.physicians: List[Physician] = sorted(
            (p for p in physicians if p.is_active), key=lambda p: p.id
        )
        self.physicians_by_id: Dict[str, Physician] = {p.id: p for p in self.physicians}

        self.fixed_cells: List[AssignmentCell] = [c for c in cells if c.is_fixed]
        self.fixed_in_scope: List[AssignmentCell] = [
            c for c in self.fixed_cells
            if c.rotation_id in self.rotations_by_id and self.rotations_by_id[c.rotation_id].is_active
        ]
        self.open_cells: List[AssignmentCell] = self._in_scope_open_cells(cells)
        self.state = self._build_state()

        targets = list(self.target_cfte_map.values())
        self.context = ScoringContext(
            config=config,
            parity_scores=self.parity_scores,
            week_count_by_physician=self.state.week_count_by_physician,
            rotation_count_by_physician=self.state.rotation_count_by_physician,
            rotation_weeks_by_physician=self.state.assigned_weeks,
            total_physicians=len(self.physicians),
            total_weeks_to_fill=len(self.open_cells),
            target_cfte_map=self.target_cfte_map,
            avg_target_cfte=sum(targets) / len(targets) if targets else 0.0,
        )
        self.seed = hash_string_to_seed(fiscal_year_id)

    # -- setup --------------------------------------------------------------

    def _in_scope_open_cells(self, cells: Iterable[AssignmentCell]) -> List[AssignmentCell]:
        in_scope = []
        for cell in cells:
            if cell.is_fixed:
                continue
            rotation = self.rotations_by_id.get(cell.rotation_id)
            if rotation is None:
                logger.warning(f"Open cell {cell.id} references unknown rotation {cell.rotation_id}; skipped")
                continue
            if not rotation.is_active:
                continue
            if cell.week_id not in self.week_number_by_id:
                logger.warning(f"Open cell {cell.id} references unknown week {cell.week_id}; skipped")
                continue
            in_scope.append(cell)
        in_scope.sort(key=self._cell_order_key)
        return in_scope

    def _cell_order_key(self, cell: AssignmentCell) -> Tuple[int, int, str, str]:
        rotation = self.rotations_by_id[cell.rotation_id]
        return (self.week_number_by_id[cell.week_id], rotation.sort_order, rotation.id, cell.id)

    def _build_state(self) -> SolverState:
        state = SolverState()
        for cell in self.fixed_cells:
            rotation = self.rotations_by_id.get(cell.rotation_id)
            cfte = rotation.cfte_per_week if rotation else 0.0
            state.apply(
                cell.physician_id,
                cell.rotation_id,
                cfte,
                cell.week_id,
                self.week_number_by_id.get(cell.week_id),
            )
        return state

    # -- lookups ------------------------------------------------------------

    def availability(self, physician_id: str, week_id: str) -> Availability:
        return self.availability_map.get(physician_id, {}).get(week_id, Availability.YELLOW)

    def preference(self, physician_id: str, rotation_id: str) -> RotationPreference:
        return self.preference_map.get(physician_id, {}).get(rotation_id, RotationPreference())

    def headroom(self, physician_id: str) -> float:
        target = self.target_cfte_map.get(physician_id, 0.0)
        used = self.clinic_cfte_map.get(physician_id, 0.0) + self.state.rotation_cfte.get(physician_id, 0.0)
        return target - used

    def _outside_active_window(self, physician: Physician, week_number: int) -> bool:
        start = self.week_number_by_id.get(physician.active_from_week_id) if physician.active_from_week_id else None
        end = self.week_number_by_id.get(physician.active_until_week_id) if physician.active_until_week_id else None
        if start is not None and week_number < start:
            return True
        if end is not None and week_number > end:
            return True
        return False

    # -- hard constraints ---------------------------------------------------

    def rejection_reason(
        self,
        physician: Physician,
        rotation: Rotation,
        week_id: str,
        week_number: int,
    ) -> Optional[str]:
        """Name of the first hard constraint the placement breaks, or None."""
        pid = physician.id
        if self.availability(pid, week_id) is Availability.RED:
            return REASON_RED_WEEK
        if self._outside_active_window(physician, week_number):
            return REASON_INACTIVE_WINDOW
        if self.preference(pid, rotation.id).avoid:
            return REASON_AVOID
        if pid not in self.target_cfte_map:
            return REASON_NO_TARGET_CFTE
        if self.headroom(pid) + CFTE_EPSILON < rotation.cfte_per_week:
            return REASON_CFTE_CAP
        max_run = self.overrides.get_max_consecutive_weeks(physician, rotation)
        if would_exceed_max_consecutive_weeks(
            self.all_week_numbers,
            self.state.weeks_on_rotation(pid, rotation.id),
            week_number,
            max_run,
        ):
            return REASON_MAX_CONSECUTIVE
        if self.state.has_week_conflict(week_id, pid):
            return REASON_WEEK_CONFLICT
        return None

    def eligible_candidates(self, cell: AssignmentCell) -> List[Candidate]:
        rotation = self.rotations_by_id[cell.rotation_id]
        week_number = self.week_number_by_id[cell.week_id]
        return [
            Candidate(
                physician_id=p.id,
                availability=self.availability(p.id, cell.week_id),
                headroom=self.headroom(p.id),
            )
            for p in self.physicians
            if self.rejection_reason(p, rotation, cell.week_id, week_number) is None
        ]

    def rejection_counts(self, cell: AssignmentCell) -> Dict[str, int]:
        rotation = self.rotations_by_id[cell.rotation_id]
        week_number = self.week_number_by_id[cell.week_id]
        counts: Counter = Counter()
        for p in self.physicians:
            reason = self.rejection_reason(p, rotation, cell.week_id, week_number)
            if reason is not None:
                counts[reason] += 1
        return dict(sorted(counts.items()))

    # -- scoring ------------------------------------------------------------

    def score(self, candidate: Candidate, cell: AssignmentCell) -> ScoredCandidate:
        return score_candidate(
            candidate,
            self.rotations_by_id[cell.rotation_id],
            self.week_number_by_id[cell.week_id],
            self.holiday_weeks.get(cell.week_id, []),
            self.preference(candidate.physician_id, cell.rotation_id),
            self.context,
        )

    def best_candidate(self, cell: AssignmentCell) -> Optional[ScoredCandidate]:
        candidates = self.eligible_candidates(cell)
        if not candidates:
            return None
        return rank_candidates([self.score(c, cell) for c in candidates])[0]

    def bind(self, cell: AssignmentCell, physician_id: str) -> None:
        rotation = self.rotations_by_id[cell.rotation_id]
        self.state.apply(
            physician_id,
            rotation.id,
            rotation.cfte_per_week,
            cell.week_id,
            self.week_number_by_id[cell.week_id],
        )

    def unbind(self, cell: AssignmentCell, physician_id: str) -> None:
        rotation = self.rotations_by_id[cell.rotation_id]
        self.state.remove(
            physician_id,
            rotation.id,
            rotation.cfte_per_week,
            cell.week_id,
            self.week_number_by_id[cell.week_id],
        )

    # -- run ----------------------------------------------------------------

    def fill(self) -> Tuple[List[AutoFillAssignment], List[AssignmentCell], int]:
        """Sweep open cells until a pass makes no assignment."""
        rng = create_seeded_rng(self.seed)
        remaining = seeded_shuffle(self.open_cells, rng)
        assignments: List[AutoFillAssignment] = []
        pass_number = 0

        while remaining:
            pass_number += 1
            still_open: List[AssignmentCell] = []
            filled = 0

            for cell in remaining:
                best = self.best_candidate(cell)
                if best is None:
                    still_open.append(cell)
                    continue
                self.bind(cell, best.physician_id)
                assignments.append(AutoFillAssignment(
                    cell_id=cell.id,
                    week_id=cell.week_id,
                    rotation_id=cell.rotation_id,
                    physician_id=best.physician_id,
                    score=best.total_score,
                    breakdown=best.breakdown,
                    pass_number=pass_number,
                ))
                filled += 1
                logger.debug(
                    f"Pass {pass_number}: week {cell.week_id} {cell.rotation_id} → "
                    f"{best.physician_id} (score={best.total_score:.2f})"
                )

            logger.info(f"Pass {pass_number}: filled {filled}, {len(still_open)} still open")
            remaining = still_open
            if filled == 0:
                break

        return assignments, remaining, pass_number

    def run(self) -> AutoFillResult:
        logger.info(
            f"Auto-fill {self.fiscal_year_id or '(no fiscal year)'}: "
            f"{len(self.open_cells)} open cells, {len(self.fixed_cells)} fixed, "
            f"{len(self.physicians)} physicians, seed={self.seed}"
        )
        assignments, remaining, passes = self.fill()

        if self.config.enable_swap_optimization and len(assignments) > 1:
            from .improve import run_swap_optimization
            assignments = run_swap_optimization(self, assignments, pass_number=passes + 1)

        reason = UNFILLED_NO_CANDIDATES if self.physicians else UNFILLED_NO_PHYSICIANS
        unfilled = [
            UnfilledCell(
                cell_id=cell.id,
                week_id=cell.week_id,
                rotation_id=cell.rotation_id,
                reason=reason,
                rejections=self.rejection_counts(cell),
            )
            for cell in sorted(remaining, key=self._cell_order_key)
        ]
        if unfilled:
            logger.warning(f"{len(unfilled)} cells remain unfilled after {passes} passes")

        metrics = compute_metrics(self, assignments, unfilled, passes)
        return AutoFillResult(assignments=assignments, unfilled=unfilled, metrics=metrics, seed=self.seed)


def run_auto_fill(
    weeks: List[Week],
    rotations: List[Rotation],
    physicians: List[Physician],
    cells: List[AssignmentCell],
    availability_map: Optional[AvailabilityMap] = None,
    preference_map: Optional[PreferenceMap] = None,
    target_cfte_map: Optional[Dict[str, float]] = None,
    clinic_cfte_map: Optional[Dict[str, float]] = None,
    holiday_weeks: Optional[HolidayWeekMap] = None,
    parity_scores: Optional[ParityScoreMap] = None,
    config: AutoFillConfig = DEFAULT_AUTO_FILL_CONFIG,
    fiscal_year_id: str = "",
    consecutive_overrides: Optional[ConsecutiveWeekOverrides] = None,
) -> AutoFillResult:
    """
    Fill every open (week, rotation) cell it can.

    Args:
        weeks:                 Weeks of the fiscal year.
        rotations:             Rotations; only active ones get filled.
        physicians:            Physicians; only active ones are candidates.
        cells:                 All cells. Cells with a physician are fixed.
        availability_map:      {physician_id: {week_id: Availability}}; default yellow.
        preference_map:        {physician_id: {rotation_id: RotationPreference}}.
        target_cfte_map:       {physician_id: target}. No target -> not eligible.
        clinic_cfte_map:       {physician_id: committed clinic cFTE}.
        holiday_weeks:         {week_id: [major holiday names]}.
        parity_scores:         Output of holidays.compute_holiday_parity_scores.
        config:                Weights and tunables.
        fiscal_year_id:        Seed source; same id + same inputs -> same result.
        consecutive_overrides: Per-physician max-consecutive overrides.

    Returns:
        AutoFillResult(assignments, unfilled, metrics, seed)
    """
    solver = AutoFillSolver(
        weeks=weeks,
        rotations=rotations,
        physicians=physicians,
        cells=cells,
        availability_map=availability_map,
        preference_map=preference_map,
        target_cfte_map=target_cfte_map,
        clinic_cfte_map=clinic_cfte_map,
        holiday_weeks=holiday_weeks,
        parity_scores=parity_scores,
        config=config,
        fiscal_year_id=fiscal_year_id,
        consecutive_overrides=consecutive_overrides,
    )
    return solver.run()


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def _std_dev(values: List[float]) -> float:
    if not values:
        return 0.0
    mean_val = sum(values) / len(values)
    variance = sum((v - mean_val) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def compute_metrics(
    solver: AutoFillSolver,
    assignments: List[AutoFillAssignment],
    unfilled: List[UnfilledCell],
    passes: int = 0,
) -> AutoFillMetrics:
    """
    Metrics over fixed + newly filled + unfilled cells. Cell totals cover
    active rotations only; fixed cells elsewhere still count for capacity.

    holiday_parity_score: mean parity component of fills on holiday weeks
                          (100 when no fill lands on a holiday week).
    cfte_std_dev:         population std of (clinic + rotation - target) cFTE.
    preferences_*:        % of solver fills on a ranked rotation or green week /
                          % of solver fills on a yellow week.
    workload_std_dev:     population std of weeks held per active physician.
    """
    n = len(assignments)
    avg_score = sum(a.score for a in assignments) / n if n else 0.0

    holiday_fills = [a for a in assignments if solver.holiday_weeks.get(a.week_id)]
    holiday_parity = (
        sum(a.breakdown.holiday_parity for a in holiday_fills) / len(holiday_fills)
        if holiday_fills else 100.0
    )

    cfte_deltas = [
        solver.clinic_cfte_map.get(p.id, 0.0)
        + solver.state.rotation_cfte.get(p.id, 0.0)
        - solver.target_cfte_map[p.id]
        for p in solver.physicians
        if p.id in solver.target_cfte_map
    ]

    satisfied = 0
    yellow = 0
    for a in assignments:
        avail = solver.availability(a.physician_id, a.week_id)
        ranked = solver.preference(a.physician_id, a.rotation_id).preference_rank is not None
        if ranked or avail is Availability.GREEN:
            satisfied += 1
        if avail is Availability.YELLOW:
            yellow += 1

    week_counts = [float(solver.state.week_count_by_physician.get(p.id, 0)) for p in solver.physicians]

    return AutoFillMetrics(
        total_cells=len(solver.fixed_in_scope) + len(solver.open_cells),
        filled_cells=len(solver.fixed_in_scope) + n,
        unfilled_cells=len(unfilled),
        avg_score=round(avg_score, 2),
        holiday_parity_score=round(holiday_parity, 2),
        cfte_std_dev=round(_std_dev(cfte_deltas), 4),
        preferences_satisfied=round(satisfied / n * 100, 2) if n else 100.0,
        preferences_violated=round(yellow / n * 100, 2) if n else 0.0,
        workload_std_dev=round(_std_dev(week_counts), 2),
        passes=passes,
    )
