"""
dry_run.py — Auto-fill a fiscal-year snapshot and report (nothing is saved back)

Full orchestration:
  1. Load snapshot and auto-fill config
  2. Derive holiday weeks, prior-year holiday map and parity bias
  3. Run the multi-pass solver (optionally with swap improvement)
  4. Audit the result (hard + soft constraints)
  5. Export run report (workload and rotation tables inside) and decision log
  6. Print summary to console

Usage:
  python -m autofill.dry_run --snapshot fy27.json
  python -m autofill.dry_run --snapshot fy27.json --config autofill_config.json --swap
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from autofill.config import load_autofill_config, load_snapshot
from autofill.constraints import ConstraintChecker
from autofill.holidays import (
    build_prior_year_holiday_map,
    compute_holiday_parity_scores,
    identify_all_holiday_weeks,
    identify_holiday_weeks,
)
from autofill.report import (
    build_rotation_matrix,
    build_workload_frame,
    export_autofill_report,
    export_decision_log,
)
from autofill.solver import run_auto_fill

logger = logging.getLogger(__name__)

OUTPUTS_DIR = PROJECT_ROOT / "outputs"


def run_dry_run(
    snapshot_path: Path,
    config_path: Optional[Path] = None,
    output_dir: Path = OUTPUTS_DIR,
    swap: bool = False,
) -> Dict[str, Any]:
    """
    Auto-fill one snapshot in dry-run mode.

    Args:
        snapshot_path: JSON snapshot of the fiscal year (see config.load_snapshot)
        config_path:   Optional AutoFillConfig JSON; defaults when missing
        output_dir:    Directory for output files
        swap:          Force the swap-improvement pass on

    Returns:
        Dict with result, workload, violations, output paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    sep = "=" * 70

    # ── 1. Load ────────────────────────────────────────────────────────────
    snapshot = load_snapshot(Path(snapshot_path))
    config = load_autofill_config(Path(config_path) if config_path else None)
    if swap and not config.enable_swap_optimization:
        config = config.with_overrides(enable_swap_optimization=True)

    label = snapshot.fiscal_year_id or Path(snapshot_path).stem
    prefix = f"autofill_{label}"

    print(f"\n{sep}")
    print(f"  DRY RUN MODE — calendar is not modified")
    print(f"  Fiscal year: {label}")
    print(f"{sep}\n")

    print("Step 1/5: Loaded inputs")
    print(
        f"  ✓ {len(snapshot.weeks)} weeks | {len(snapshot.rotations)} rotations | "
        f"{len(snapshot.physicians)} physicians | {len(snapshot.cells)} cells | "
        f"{len(snapshot.consecutive_overrides)} consecutive overrides"
    )

    # ── 2. Holidays ────────────────────────────────────────────────────────
    print("\nStep 2/5: Deriving holiday parity...")
    holiday_weeks = identify_holiday_weeks(snapshot.calendar_events, config.major_holiday_names)
    prior_holiday_weeks = identify_all_holiday_weeks(snapshot.prior_year_events)
    prior_map = build_prior_year_holiday_map(snapshot.prior_year_assignments, prior_holiday_weeks)
    parity_scores = compute_holiday_parity_scores(
        prior_map,
        config.major_holiday_names,
        [p.id for p in snapshot.physicians if p.is_active],
    )
    print(f"  ✓ {len(holiday_weeks)} major-holiday weeks | {len(prior_map)} prior-year holidays on record")

    # ── 3. Solve ───────────────────────────────────────────────────────────
    print("\nStep 3/5: Running auto-fill...")
    result = run_auto_fill(
        weeks=snapshot.weeks,
        rotations=snapshot.rotations,
        physicians=snapshot.physicians,
        cells=snapshot.cells,
        availability_map=snapshot.availability_map,
        preference_map=snapshot.preference_map,
        target_cfte_map=snapshot.target_cfte_map,
        clinic_cfte_map=snapshot.clinic_cfte_map,
        holiday_weeks=holiday_weeks,
        parity_scores=parity_scores,
        config=config,
        fiscal_year_id=snapshot.fiscal_year_id,
        consecutive_overrides=snapshot.consecutive_overrides,
    )
    m = result.metrics
    print(f"  ✓ {len(result.assignments)} new assignments in {m.passes} passes (seed {result.seed})")

    # ── 4. Audit ───────────────────────────────────────────────────────────
    print("\nStep 4/5: Checking constraints...")
    checker = ConstraintChecker(
        weeks=snapshot.weeks,
        rotations=snapshot.rotations,
        physicians=snapshot.physicians,
        availability_map=snapshot.availability_map,
        preference_map=snapshot.preference_map,
        target_cfte_map=snapshot.target_cfte_map,
        clinic_cfte_map=snapshot.clinic_cfte_map,
        consecutive_overrides=snapshot.consecutive_overrides,
    )
    hard_violations, soft_violations = checker.check_all(snapshot.cells, result)
    h_count = len(hard_violations)
    status = "✓" if h_count == 0 else "✗"
    print(f"  {status} Hard violations: {h_count}")
    print(f"    Soft violations: {len(soft_violations)}")

    # ── 5. Export ──────────────────────────────────────────────────────────
    print("\nStep 5/5: Exporting outputs...")
    workload = build_workload_frame(
        snapshot.physicians, snapshot.rotations, snapshot.cells, result,
        snapshot.target_cfte_map, snapshot.clinic_cfte_map,
    )
    matrix = build_rotation_matrix(snapshot.rotations, snapshot.cells, result)

    report_path    = output_dir / f"{prefix}_report.txt"
    decisions_path = output_dir / f"{prefix}_decisions.json"

    export_autofill_report(
        result, workload, report_path, hard_violations, soft_violations,
        label=label, rotation_matrix=matrix,
    )
    export_decision_log(result, decisions_path)

    print(f"  ✓ Report:    {report_path.name}")
    print(f"  ✓ Decisions: {decisions_path.name}")

    # ── Summary ────────────────────────────────────────────────────────────
    print(f"\n{sep}")
    print("  SUMMARY")
    print(f"{sep}")
    print(f"  Filled / total cells:  {m.filled_cells} / {m.total_cells}")
    print(f"  Unfilled cells:        {m.unfilled_cells}")
    print(f"  Average score:         {m.avg_score:.2f}")
    print(f"  Holiday parity score:  {m.holiday_parity_score:.2f}")
    print(f"  Preferences satisfied: {m.preferences_satisfied:.1f}%")
    print(f"  Workload Std Dev:      {m.workload_std_dev:.2f}")
    print(f"  cFTE Std Dev:          {m.cfte_std_dev:.4f}")
    print(f"  Hard violations:       {h_count}  {status}")

    over = workload[workload["status"] == "over"]
    if not over.empty:
        print(f"\n  Over target cFTE:")
        for row in over.to_dict("records"):
            print(f"    {row['physician']:<16} {row['total_cfte']:.4f} / {row['target_cfte']:.4f}")

    print(f"\n{sep}\n")

    return {
        "result":          result,
        "workload":        workload,
        "rotation_matrix": matrix,
        "hard_violations": hard_violations,
        "soft_violations": soft_violations,
        "outputs": {
            "report":    report_path,
            "decisions": decisions_path,
        },
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Dry-run rotation auto-fill for one fiscal-year snapshot"
    )
    parser.add_argument("--snapshot",   required=True, help="Fiscal-year snapshot JSON")
    parser.add_argument("--config",     default=None,  help="Auto-fill config JSON (default: config/autofill_config.json)")
    parser.add_argument("--output-dir", default=None,  help="Output directory (default: outputs/)")
    parser.add_argument("--swap",       action="store_true", help="Run the swap-improvement pass")
    parser.add_argument("--verbose",    action="store_true", help="Log every assignment")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    out_dir = Path(args.output_dir) if args.output_dir else OUTPUTS_DIR
    try:
        run_dry_run(
            Path(args.snapshot),
            config_path=Path(args.config) if args.config else None,
            output_dir=out_dir,
            swap=args.swap,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
