"""
End-to-end dry run: snapshot JSON → holiday parity → solve → audit → exports
"""

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill import dry_run
from autofill.dry_run import run_dry_run


def build_snapshot():
    weeks = [{"id": f"w{i}", "week_number": i} for i in range(1, 7)]
    rotations = [
        {"id": "micu", "cfte_per_week": 0.02, "max_consecutive_weeks": 2, "sort_order": 1, "abbreviation": "MICU"},
        {"id": "cons", "cfte_per_week": 0.01, "max_consecutive_weeks": 2, "sort_order": 2, "abbreviation": "CONS"},
    ]
    physicians = [{"id": f"p{i}", "initials": f"D{i}"} for i in range(1, 5)]
    cells = [
        {"id": f"c-{w['id']}-{r['id']}", "week_id": w["id"], "rotation_id": r["id"]}
        for w in weeks for r in rotations
    ]
    cells[0]["physician_id"] = "p1"
    cells[0]["source"] = "manual"
    return {
        "fiscal_year_id": "fy2027",
        "weeks": weeks,
        "rotations": rotations,
        "physicians": physicians,
        "cells": cells,
        "availability": {"p2": {"w5": "red"}, "p3": {"w1": "green", "w2": "green"}},
        "preferences": {"p4": {"cons": {"avoid": True}}, "p2": {"micu": {"preference_rank": 1}}},
        "target_cfte": {"p1": 0.5, "p2": 0.5, "p3": 0.5, "p4": 0.5},
        "clinic_cfte": {"p1": 0.4},
        "calendar_events": [{"week_id": "w5", "name": "Thanksgiving Day"}],
        "prior_year": {
            "assignments": [{"week_id": "py47", "physician_id": "p3"}],
            "calendar_events": [{"week_id": "py47", "name": "Thanksgiving Day"}],
        },
        "consecutive_overrides": [{"physician": "D2", "rotation": "MICU", "max_consecutive_weeks": 1}],
    }


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "fy2027.json"
    with open(path, "w") as f:
        json.dump(build_snapshot(), f)
    return path


class TestRunDryRun:

    def test_full_run(self, snapshot_path, tmp_path):
        """Snapshot with manual cell, red week, avoid, holiday and override"""
        out = tmp_path / "outputs"
        summary = run_dry_run(snapshot_path, config_path=tmp_path / "no_config.json", output_dir=out)

        assert summary["hard_violations"] == []
        result = summary["result"]
        assert result.metrics.total_cells == 12
        assert result.metrics.filled_cells + result.metrics.unfilled_cells == 12
        for path in summary["outputs"].values():
            assert path.exists()

        by_cell = {a.cell_id: a.physician_id for a in result.assignments}
        assert "c-w1-micu" not in by_cell
        assert by_cell.get("c-w5-micu") != "p2"
        assert by_cell.get("c-w5-cons") != "p2"
        assert all(
            not (a.physician_id == "p4" and a.rotation_id == "cons") for a in result.assignments
        )

    def test_swap_flag(self, snapshot_path, tmp_path):
        """--swap path keeps the result clean"""
        summary = run_dry_run(
            snapshot_path, config_path=tmp_path / "no_config.json", output_dir=tmp_path / "out", swap=True,
        )
        assert summary["hard_violations"] == []

    def test_config_file_applied(self, snapshot_path, tmp_path):
        """Config file weights load into the run"""
        cfg = tmp_path / "cfg.json"
        with open(cfg, "w") as f:
            json.dump({"weight_preference": 0, "weight_holiday_parity": 0}, f)
        summary = run_dry_run(snapshot_path, config_path=cfg, output_dir=tmp_path / "out")
        assert summary["hard_violations"] == []


class TestMain:

    def test_missing_snapshot_exits_1(self, tmp_path, monkeypatch):
        """Missing snapshot prints an error and exits 1"""
        monkeypatch.setattr(sys, "argv", ["dry_run", "--snapshot", str(tmp_path / "missing.json")])
        with pytest.raises(SystemExit) as exc:
            dry_run.main()
        assert exc.value.code == 1

    def test_main_writes_outputs(self, snapshot_path, tmp_path, monkeypatch):
        """CLI writes report and decision log to --output-dir"""
        out = tmp_path / "cli"
        monkeypatch.setattr(sys, "argv", [
            "dry_run", "--snapshot", str(snapshot_path), "--config", str(tmp_path / "none.json"),
            "--output-dir", str(out),
        ])
        dry_run.main()
        assert (out / "autofill_fy2027_report.txt").exists()
        assert (out / "autofill_fy2027_decisions.json").exists()
