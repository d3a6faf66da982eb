"""
physician.py — "Fill just my remaining slots" for a single physician

prepare_assignments_for_physician_auto_fill relabels the calendar so the
general solver can run with one physician in scope:
  - the target's own auto cells are cleared (replace=True) or left as-is
  - other physicians' auto cells become MANUAL_ANCHOR, so they stay fixed
    without being mistaken for manual commitments
  - everything else passes through unchanged
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import AssignmentCell, AssignmentSource, AutoFillResult, Physician
from .solver import run_auto_fill

logger = logging.getLogger(__name__)


def prepare_assignments_for_physician_auto_fill(
    cells: Sequence[AssignmentCell],
    physician_id: str,
    replace_existing_auto_assignments: bool,
) -> Tuple[List[AssignmentCell], List[str]]:
    """
    Returns:
        (solver_cells, cell_ids_to_clear)
        cell_ids_to_clear lists the target's auto cells that were reopened,
        for the caller to clear in storage.
    """
    ids_to_clear: List[str] = []
    solver_cells: List[AssignmentCell] = []

    for cell in cells:
        is_auto = cell.source is AssignmentSource.AUTO
        is_target = cell.physician_id == physician_id

        if is_target and is_auto and replace_existing_auto_assignments:
            ids_to_clear.append(cell.id)
            solver_cells.append(replace(cell, physician_id=None, source=None))
        elif cell.physician_id and not is_target and is_auto:
            solver_cells.append(replace(cell, source=AssignmentSource.MANUAL_ANCHOR))
        else:
            solver_cells.append(cell)

    logger.info(
        f"Physician auto-fill prep for {physician_id}: "
        f"{len(ids_to_clear)} cells reopened, "
        f"{sum(1 for c in solver_cells if c.source is AssignmentSource.MANUAL_ANCHOR)} anchors"
    )
    return solver_cells, ids_to_clear


@dataclass
class PhysicianAutoFillRun:
    result: AutoFillResult
    cell_ids_to_clear: List[str] = field(default_factory=list)
    solver_cells: List[AssignmentCell] = field(default_factory=list)


def run_physician_auto_fill(
    cells: Sequence[AssignmentCell],
    physician: Physician,
    replace_existing_auto_assignments: bool = False,
    **solver_kwargs: Any,
) -> PhysicianAutoFillRun:
    """
    Prepare cells for one physician and run the general solver with only
    that physician in scope. solver_kwargs go straight to run_auto_fill
    (weeks, rotations, availability_map, ...); 'physicians' is not accepted.
    """
    if "physicians" in solver_kwargs:
        raise ValueError("run_physician_auto_fill takes a single physician, not 'physicians'")

    solver_cells, ids_to_clear = prepare_assignments_for_physician_auto_fill(
        cells, physician.id, replace_existing_auto_assignments,
    )
    result = run_auto_fill(physicians=[physician], cells=solver_cells, **solver_kwargs)
    return PhysicianAutoFillRun(result=result, cell_ids_to_clear=ids_to_clear, solver_cells=solver_cells)


# ---------------------------------------------------------------------------
# Advisory warnings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PhysicianAutoFillWarnings:
    warnings: List[str]
    missing_request: bool
    pending_approval: bool
    missing_rotation_preference_count: int

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "missing_request": self.missing_request,
            "pending_approval": self.pending_approval,
            "missing_rotation_preference_count": self.missing_rotation_preference_count,
        }


def build_physician_auto_fill_warnings(
    physician_label: str,
    missing_request: bool,
    pending_approval: bool,
    missing_rotation_names: Optional[Sequence[str]] = None,
) -> PhysicianAutoFillWarnings:
    """Human-readable, non-blocking warnings shown before a single-physician run."""
    missing = list(missing_rotation_names or [])
    warnings: List[str] = []
    if missing_request:
        warnings.append(
            f"{physician_label} has no schedule request for this fiscal year. "
            f"Missing rotation preferences are treated as willing."
        )
    if pending_approval:
        warnings.append(
            f"{physician_label} rotation preferences are not admin-approved. "
            f"Auto-fill proceeds in physician mode with caution."
        )
    if missing:
        warnings.append(
            f"{physician_label} is missing explicit preferences for: {', '.join(missing)}."
        )
    return PhysicianAutoFillWarnings(
        warnings=warnings,
        missing_request=missing_request,
        pending_approval=pending_approval,
        missing_rotation_preference_count=len(missing),
    )
