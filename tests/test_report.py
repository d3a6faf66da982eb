"""
Tests for the export layer (workload table, rotation matrix, text report,
decision log) and the cFTE helpers behind it
"""

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill.cfte import (
    ClinicAssignment,
    RotationLoad,
    calculate_clinic_cfte,
    calculate_total_cfte,
    get_cfte_status,
)
from autofill.models import (
    AssignmentCell,
    AssignmentSource,
    AutoFillResult,
    Availability,
    Physician,
    Rotation,
    Week,
)
from autofill.report import (
    build_rotation_matrix,
    build_workload_frame,
    export_autofill_report,
    export_decision_log,
)
from autofill.solver import run_auto_fill


@pytest.fixture
def run():
    weeks = [Week(f"w{i}", i) for i in range(1, 5)]
    rotations = [
        Rotation("r2", cfte_per_week=0.05, max_consecutive_weeks=2, sort_order=2),
        Rotation("r1", cfte_per_week=0.1, max_consecutive_weeks=2, sort_order=1),
    ]
    physicians = [Physician("p1", initials="AB"), Physician("p2", initials="CD"), Physician("p3", initials="EF")]
    cells = [
        AssignmentCell(f"c-{w.id}-{r.id}", w.id, r.id)
        for w in weeks for r in rotations
    ]
    cells[0] = AssignmentCell("c-w1-r2", "w1", "r2", physician_id="p1", source=AssignmentSource.MANUAL)
    targets = {"p1": 1.0, "p2": 1.0, "p3": 1.0}
    clinic = {"p1": 0.2}
    result = run_auto_fill(
        weeks=weeks,
        rotations=rotations,
        physicians=physicians,
        cells=cells,
        availability_map={p.id: {w.id: Availability.GREEN for w in weeks} for p in physicians},
        target_cfte_map=targets,
        clinic_cfte_map=clinic,
        fiscal_year_id="fy2027",
    )
    return {
        "physicians": physicians,
        "rotations": rotations,
        "cells": cells,
        "result": result,
        "targets": targets,
        "clinic": clinic,
    }


class TestWorkloadFrame:

    def test_one_row_per_physician(self, run):
        """One row per active physician; weeks split fixed/new"""
        frame = build_workload_frame(
            run["physicians"], run["rotations"], run["cells"], run["result"], run["targets"], run["clinic"],
        )
        assert list(frame["physician"]) == ["p1", "p2", "p3"]
        assert frame["total_weeks"].sum() == 8
        assert frame["fixed_weeks"].sum() == 1
        assert frame["new_weeks"].sum() == len(run["result"].assignments)

    def test_cfte_columns(self, run):
        """Totals add up and status follows the compliance band"""
        frame = build_workload_frame(
            run["physicians"], run["rotations"], run["cells"], run["result"], run["targets"], run["clinic"],
        ).set_index("physician")
        assert frame.loc["p1", "clinic_cfte"] == pytest.approx(0.2)
        for pid in ("p1", "p2", "p3"):
            row = frame.loc[pid]
            assert row["total_cfte"] == pytest.approx(row["rotation_cfte"] + row["clinic_cfte"], abs=1e-4)
            assert row["delta"] == pytest.approx(row["total_cfte"] - 1.0, abs=1e-4)
            assert row["status"] == "under"

    def test_missing_target(self, run):
        """No target cFTE -> "no target" status"""
        frame = build_workload_frame(run["physicians"], run["rotations"], run["cells"], run["result"])
        assert set(frame["status"]) == {"no target"}


class TestRotationMatrix:

    def test_counts_and_order(self, run):
        """Columns follow rotation sort order; counts match cells"""
        matrix = build_rotation_matrix(run["rotations"], run["cells"], run["result"])
        assert list(matrix.columns) == ["r1", "r2"]
        assert int(matrix.values.sum()) == 8
        assert int(matrix["r1"].sum()) == 4

    def test_empty(self, run):
        result = run["result"]
        empty = AutoFillResult(assignments=[], unfilled=[], metrics=result.metrics)
        assert build_rotation_matrix(run["rotations"], [], empty).empty


class TestExports:

    def test_text_report(self, run, tmp_path):
        """Report file written with header, sections and every physician"""
        frame = build_workload_frame(
            run["physicians"], run["rotations"], run["cells"], run["result"], run["targets"], run["clinic"],
        )
        path = tmp_path / "out" / "report.txt"
        text = export_autofill_report(run["result"], frame, path, label="fy2027")
        assert path.exists()
        assert "AUTO-FILL REPORT — fy2027" in text
        assert "Unfilled Cells" in text
        for pid in ("p1", "p2", "p3"):
            assert pid in text

    def test_decision_log(self, run, tmp_path):
        """Decision log carries seed, per-assignment breakdown and metrics"""
        path = tmp_path / "decisions.json"
        export_decision_log(run["result"], path)
        with open(path) as f:
            data = json.load(f)
        assert len(data["assignments"]) == len(run["result"].assignments)
        assert data["seed"] == run["result"].seed
        first = data["assignments"][0]
        assert set(first) == {"cell_id", "week_id", "rotation_id", "physician_id", "score", "pass_number", "breakdown"}
        assert data["metrics"]["unfilled_cells"] == 0


class TestCfteHelpers:

    def test_clinic_cfte(self):
        clinics = [ClinicAssignment(2, 0.01, 40), ClinicAssignment(1, 0.01, 20)]
        assert calculate_clinic_cfte(clinics) == pytest.approx(1.0)

    def test_total_cfte_rounded(self):
        """Components rounded to 4 decimals"""
        totals = calculate_total_cfte(
            [ClinicAssignment(1, 0.0123456, 10)],
            [RotationLoad(0.1, 3)],
        )
        assert totals == {"clinic_cfte": 0.1235, "rotation_cfte": 0.3, "total_cfte": 0.4235}

    @pytest.mark.parametrize("total,target,status", [
        (0.94, 1.0, "under"),
        (0.95, 1.0, "compliant"),
        (1.05, 1.0, "compliant"),
        (1.06, 1.0, "over"),
        (0.0, 0.0, "compliant"),
        (0.1, 0.0, "over"),
    ])
    def test_status(self, total, target, status):
        """Within 5% of target is compliant"""
        assert get_cfte_status(total, target) == status
