"""
report.py — Export layer for auto-fill runs

Outputs:
  - Workload table (pandas): per physician weeks held, cFTE used vs target
  - Rotation matrix (pandas): physician × rotation week counts
  - Run report (.txt): summary metrics, workload table, unfilled cells,
    audit violations
  - Decision log (.json): every solver-made assignment with its score
    breakdown and pass number

Usage:
  from autofill.report import build_workload_frame, export_autofill_report
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .cfte import RotationLoad, calculate_rotation_cfte, get_cfte_status, round4
from .constraints import ConstraintViolation
from .models import AssignmentCell, AutoFillResult, Physician, Rotation

logger = logging.getLogger(__name__)

WORKLOAD_COLUMNS = [
    "physician", "initials", "fixed_weeks", "new_weeks", "total_weeks",
    "rotation_cfte", "clinic_cfte", "total_cfte", "target_cfte", "delta", "status",
]


def _bound_pairs(
    cells: Sequence[AssignmentCell],
    result: AutoFillResult,
) -> Iterator[Tuple[str, str, bool]]:
    """(physician_id, rotation_id, is_new) for fixed cells then solver fills."""
    for cell in cells:
        if cell.is_fixed:
            yield cell.physician_id, cell.rotation_id, False
    for a in result.assignments:
        yield a.physician_id, a.rotation_id, True


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def build_workload_frame(
    physicians: Sequence[Physician],
    rotations: Sequence[Rotation],
    cells: Sequence[AssignmentCell],
    result: AutoFillResult,
    target_cfte_map: Optional[Dict[str, float]] = None,
    clinic_cfte_map: Optional[Dict[str, float]] = None,
):
    """One row per active physician, sorted by physician id."""
    import pandas as pd

    targets = target_cfte_map or {}
    clinic = clinic_cfte_map or {}
    cfte_by_rotation = {r.id: r.cfte_per_week for r in rotations}

    fixed_weeks: Dict[str, int] = {}
    new_weeks: Dict[str, int] = {}
    loads: Dict[str, Dict[str, int]] = {}
    for pid, rid, is_new in _bound_pairs(cells, result):
        counter = new_weeks if is_new else fixed_weeks
        counter[pid] = counter.get(pid, 0) + 1
        per_rot = loads.setdefault(pid, {})
        per_rot[rid] = per_rot.get(rid, 0) + 1

    rows = []
    for p in sorted((p for p in physicians if p.is_active), key=lambda p: p.id):
        rotation_cfte = calculate_rotation_cfte(
            RotationLoad(cfte_per_week=cfte_by_rotation.get(rid, 0.0), week_count=n)
            for rid, n in loads.get(p.id, {}).items()
        )
        clinic_cfte = clinic.get(p.id, 0.0)
        total = rotation_cfte + clinic_cfte
        target = targets.get(p.id)
        rows.append({
            "physician":     p.id,
            "initials":      p.initials,
            "fixed_weeks":   fixed_weeks.get(p.id, 0),
            "new_weeks":     new_weeks.get(p.id, 0),
            "total_weeks":   fixed_weeks.get(p.id, 0) + new_weeks.get(p.id, 0),
            "rotation_cfte": round4(rotation_cfte),
            "clinic_cfte":   round4(clinic_cfte),
            "total_cfte":    round4(total),
            "target_cfte":   target,
            "delta":         round4(total - target) if target is not None else None,
            "status":        get_cfte_status(total, target) if target is not None else "no target",
        })

    return pd.DataFrame(rows, columns=WORKLOAD_COLUMNS)


def build_rotation_matrix(
    rotations: Sequence[Rotation],
    cells: Sequence[AssignmentCell],
    result: AutoFillResult,
):
    """Physician × rotation week counts; columns in rotation sort order."""
    import pandas as pd

    rows = [{"physician": pid, "rotation": rid, "weeks": 1} for pid, rid, _ in _bound_pairs(cells, result)]
    if not rows:
        return pd.DataFrame()

    df = pd.DataFrame(rows)
    matrix = df.pivot_table(index="physician", columns="rotation", values="weeks", aggfunc="sum", fill_value=0)

    order = [r.id for r in sorted(rotations, key=lambda r: (r.sort_order, r.id)) if r.id in matrix.columns]
    rest = [c for c in matrix.columns if c not in order]
    return matrix[order + rest].astype(int)


# ---------------------------------------------------------------------------
# Text report
# ---------------------------------------------------------------------------

def export_autofill_report(
    result: AutoFillResult,
    workload,
    output_path: Path,
    hard_violations: Optional[List[ConstraintViolation]] = None,
    soft_violations: Optional[List[ConstraintViolation]] = None,
    label: str = "",
    rotation_matrix=None,
) -> str:
    """
    Export the run report (text format).

    Includes:
      - Fill counts, pass count, seed and quality metrics
      - Per-physician weeks and cFTE vs target (from build_workload_frame)
      - Physician × rotation week counts (from build_rotation_matrix), if given
      - Unfilled cells with rejection counts
      - Hard/soft audit violations

    Returns the report text.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    hard = hard_violations or []
    soft = soft_violations or []
    m = result.metrics
    sep = "=" * 70

    lines = [
        sep,
        f"  AUTO-FILL REPORT{(' — ' + label) if label else ''}",
        sep,
        "",
        f"  Cells (total / filled / unfilled): {m.total_cells} / {m.filled_cells} / {m.unfilled_cells}",
        f"  New assignments:       {len(result.assignments)}",
        f"  Passes:                {m.passes}",
        f"  Seed:                  {result.seed}",
        f"  Average score:         {m.avg_score:.2f}",
        f"  Holiday parity score:  {m.holiday_parity_score:.2f}",
        f"  cFTE Std Dev:          {m.cfte_std_dev:.4f}",
        f"  Workload Std Dev:      {m.workload_std_dev:.2f}",
        f"  Preferences satisfied: {m.preferences_satisfied:.1f}%",
        f"  Yellow-week fills:     {m.preferences_violated:.1f}%",
        f"  Hard violations:       {len(hard)}  {'✓' if not hard else '✗'}",
        f"  Soft violations:       {len(soft)}",
        "",
        "─" * 70,
        "  Per-Physician Workload & cFTE",
        "─" * 70,
        f"  {'Physician':<14} {'Weeks':>6} {'New':>5} {'Rot':>8} {'Clinic':>8} {'Total':>8} {'Target':>8}  Status",
    ]

    for row in workload.to_dict("records"):
        target = row["target_cfte"]
        target_str = f"{target:>8.4f}" if target is not None and target == target else f"{'-':>8}"
        lines.append(
            f"  {row['physician']:<14} {row['total_weeks']:>6d} {row['new_weeks']:>5d} "
            f"{row['rotation_cfte']:>8.4f} {row['clinic_cfte']:>8.4f} {row['total_cfte']:>8.4f} "
            f"{target_str}  {row['status']}"
        )

    if rotation_matrix is not None and not rotation_matrix.empty:
        lines += [
            "",
            "─" * 70,
            "  Rotation Weeks by Physician",
            "─" * 70,
        ]
        lines += ["  " + line for line in rotation_matrix.to_string().splitlines()]

    lines += [
        "",
        "─" * 70,
        "  Unfilled Cells",
        "─" * 70,
    ]
    if result.unfilled:
        for cell in result.unfilled:
            reasons = ", ".join(f"{k}={v}" for k, v in cell.rejections.items()) or "-"
            lines.append(f"  week={cell.week_id:<10} rotation={cell.rotation_id:<12} {reasons}")
    else:
        lines.append("  (none)")

    lines += [
        "",
        "─" * 70,
        f"  Audit Violations (HARD {len(hard)}, SOFT {len(soft)})",
        "─" * 70,
    ]
    for v in hard + soft:
        lines.append(f"  {v}")
    if not hard and not soft:
        lines.append("  (none)")

    lines.append("")
    lines.append(sep)

    report_text = "\n".join(lines)
    with open(output_path, "w") as f:
        f.write(report_text)

    logger.info(f"Auto-fill report exported → {output_path}")
    return report_text


# ---------------------------------------------------------------------------
# Decision log
# ---------------------------------------------------------------------------

def decision_log_entries(result: AutoFillResult) -> List[Dict[str, Any]]:
    return [
        {
            "cell_id":     a.cell_id,
            "week_id":     a.week_id,
            "rotation_id": a.rotation_id,
            "physician_id": a.physician_id,
            "score":       round(a.score, 2),
            "pass_number": a.pass_number,
            "breakdown":   {k: round(v, 2) for k, v in a.breakdown.as_dict().items()},
        }
        for a in result.assignments
    ]


def export_decision_log(result: AutoFillResult, output_path: Path) -> None:
    """Write solver decisions, unfilled cells and metrics as JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "seed": result.seed,
        "assignments": decision_log_entries(result),
        "unfilled": [
            {
                "cell_id":     u.cell_id,
                "week_id":     u.week_id,
                "rotation_id": u.rotation_id,
                "reason":      u.reason,
                "rejections":  dict(u.rejections),
            }
            for u in result.unfilled
        ],
        "metrics": {
            "total_cells":           result.metrics.total_cells,
            "filled_cells":          result.metrics.filled_cells,
            "unfilled_cells":        result.metrics.unfilled_cells,
            "avg_score":             result.metrics.avg_score,
            "holiday_parity_score":  result.metrics.holiday_parity_score,
            "cfte_std_dev":          result.metrics.cfte_std_dev,
            "preferences_satisfied": result.metrics.preferences_satisfied,
            "preferences_violated":  result.metrics.preferences_violated,
            "workload_std_dev":      result.metrics.workload_std_dev,
            "passes":                result.metrics.passes,
        },
    }
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Decision log exported → {output_path}")
