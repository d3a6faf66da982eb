"""
improve.py — Swap-improvement pass over solver-made assignments

Runs after the greedy passes when AutoFillConfig.enable_swap_optimization
is set. For each pair of solver-made assignments held by different
physicians, try exchanging the physicians. A swap is accepted when both new
placements pass every hard constraint and the pair's score rises by more
than SWAP_MIN_IMPROVEMENT. Fixed cells are never touched.

Both the current and the swapped pair are scored against the same state
(both cells released).
Stops after a full scan with no accepted swap, or after
config.max_swap_iterations accepted swaps.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .models import AssignmentCell, Availability, AutoFillAssignment, ScoredCandidate
from .schedule_config import SWAP_MIN_IMPROVEMENT
from .scorer import Candidate

if TYPE_CHECKING:
    from .solver import AutoFillSolver

logger = logging.getLogger(__name__)


def _cell_for(assignment: AutoFillAssignment) -> AssignmentCell:
    return AssignmentCell(
        id=assignment.cell_id,
        week_id=assignment.week_id,
        rotation_id=assignment.rotation_id,
    )


def _quick_reject(solver: "AutoFillSolver", physician_id: str, cell: AssignmentCell) -> bool:
    if solver.availability(physician_id, cell.week_id) is Availability.RED:
        return True
    return solver.preference(physician_id, cell.rotation_id).avoid


def _score_at(solver: "AutoFillSolver", physician_id: str, cell: AssignmentCell) -> ScoredCandidate:
    candidate = Candidate(
        physician_id=physician_id,
        availability=solver.availability(physician_id, cell.week_id),
        headroom=solver.headroom(physician_id),
    )
    return solver.score(candidate, cell)


def try_swap(
    solver: "AutoFillSolver",
    a1: AutoFillAssignment,
    a2: AutoFillAssignment,
    pass_number: int,
) -> Optional[Tuple[AutoFillAssignment, AutoFillAssignment]]:
    """
    Attempt to exchange the physicians of a1 and a2. On success the solver
    state reflects the swap and the two replacement assignments are
    returned; otherwise state is restored and None is returned.
    """
    p1, p2 = a1.physician_id, a2.physician_id
    c1, c2 = _cell_for(a1), _cell_for(a2)
    if p1 == p2:
        return None
    if _quick_reject(solver, p2, c1) or _quick_reject(solver, p1, c2):
        return None

    physician1 = solver.physicians_by_id.get(p1)
    physician2 = solver.physicians_by_id.get(p2)
    if physician1 is None or physician2 is None:
        return None
    r1 = solver.rotations_by_id[c1.rotation_id]
    r2 = solver.rotations_by_id[c2.rotation_id]
    wn1 = solver.week_number_by_id[c1.week_id]
    wn2 = solver.week_number_by_id[c2.week_id]

    solver.unbind(c1, p1)
    solver.unbind(c2, p2)

    current_total = _score_at(solver, p1, c1).total_score + _score_at(solver, p2, c2).total_score
    new1 = _score_at(solver, p2, c1)
    new2 = _score_at(solver, p1, c2)

    accepted = False
    if new1.total_score + new2.total_score > current_total + SWAP_MIN_IMPROVEMENT:
        if solver.rejection_reason(physician2, r1, c1.week_id, wn1) is None:
            solver.bind(c1, p2)
            if solver.rejection_reason(physician1, r2, c2.week_id, wn2) is None:
                solver.bind(c2, p1)
                accepted = True
            else:
                solver.unbind(c1, p2)

    if not accepted:
        solver.bind(c1, p1)
        solver.bind(c2, p2)
        return None

    swapped1 = AutoFillAssignment(
        cell_id=a1.cell_id, week_id=a1.week_id, rotation_id=a1.rotation_id,
        physician_id=p2, score=new1.total_score, breakdown=new1.breakdown,
        pass_number=pass_number,
    )
    swapped2 = AutoFillAssignment(
        cell_id=a2.cell_id, week_id=a2.week_id, rotation_id=a2.rotation_id,
        physician_id=p1, score=new2.total_score, breakdown=new2.breakdown,
        pass_number=pass_number,
    )
    return swapped1, swapped2


def run_swap_optimization(
    solver: "AutoFillSolver",
    assignments: List[AutoFillAssignment],
    pass_number: int,
) -> List[AutoFillAssignment]:
    """Hill-climb over pairwise swaps. Returns a new assignment list; order is kept."""
    result = list(assignments)
    max_iterations = solver.config.max_swap_iterations
    swaps = 0
    improved = True

    while improved and swaps < max_iterations:
        improved = False
        for i in range(len(result)):
            for j in range(i + 1, len(result)):
                swapped = try_swap(solver, result[i], result[j], pass_number)
                if swapped is None:
                    continue
                result[i], result[j] = swapped
                swaps += 1
                improved = True
                logger.debug(
                    f"Swap {swaps}: {result[i].cell_id}↔{result[j].cell_id} "
                    f"({result[j].physician_id}↔{result[i].physician_id})"
                )
                break
            if improved:
                break

    by_pass: Dict[int, int] = {}
    for a in result:
        by_pass[a.pass_number] = by_pass.get(a.pass_number, 0) + 1
    logger.info(f"Swap optimization: {swaps} swaps accepted; assignments by pass {by_pass}")
    return result
