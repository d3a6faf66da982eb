"""
Tests for auto-fill config JSON and snapshot loading
"""

import json
import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill.config import load_autofill_config, load_snapshot, save_autofill_config
from autofill.models import AssignmentSource, Availability
from autofill.schedule_config import DEFAULT_AUTO_FILL_CONFIG, AutoFillConfig


def sample_snapshot():
    return {
        "fiscal_year_id": "fy2027",
        "weeks": [{"id": "w1", "week_number": 1}, {"id": "w2", "week_number": 2}],
        "rotations": [{"id": "r1", "cfte_per_week": 0.02, "abbreviation": "MICU", "max_consecutive_weeks": 2}],
        "physicians": [{"id": "p1", "initials": "AB"}, {"id": "p2", "initials": "CD", "is_active": False}],
        "cells": [
            {"id": "c1", "week_id": "w1", "rotation_id": "r1", "physician_id": "p1", "source": "manual"},
            {"id": "c2", "week_id": "w2", "rotation_id": "r1"},
        ],
        "availability": {"p1": {"w1": "green", "w2": "RED"}},
        "preferences": {"p1": {"r1": {"preference_rank": 1, "deprioritize": True}}},
        "target_cfte": {"p1": 0.6},
        "clinic_cfte": {"p1": "0.2"},
        "calendar_events": [{"week_id": "w2", "name": "Thanksgiving Day"}],
        "prior_year": {
            "assignments": [{"week_id": "pw47", "physician_id": "p1"}],
            "calendar_events": [{"week_id": "pw47", "name": "Thanksgiving Day"}],
        },
        "consecutive_overrides": [{"physician": "AB", "rotation": "MICU", "max_consecutive_weeks": 1}],
    }


def write_json(path, data):
    with open(path, "w") as f:
        json.dump(data, f)
    return path


class TestAutoFillConfig:

    def test_missing_file_uses_defaults(self, tmp_path, caplog):
        """Absent config file -> defaults plus a warning"""
        with caplog.at_level(logging.WARNING):
            config = load_autofill_config(tmp_path / "missing.json")
        assert config == DEFAULT_AUTO_FILL_CONFIG
        assert "not found" in caplog.text

    def test_save_then_load(self, tmp_path):
        """Saved config reloads unchanged; last_updated is metadata only"""
        path = tmp_path / "cfg.json"
        config = AutoFillConfig(
            weight_preference=50,
            major_holiday_names=("Thanksgiving Day",),
            enable_swap_optimization=True,
        )
        save_autofill_config(config, path)
        with open(path) as f:
            assert "last_updated" in json.load(f)
        assert load_autofill_config(path) == config

    def test_partial_file_keeps_defaults(self, tmp_path):
        """Keys not in the file keep their default values"""
        path = write_json(tmp_path / "cfg.json", {"min_gap_weeks_between_stints": 4, "notes": "winter"})
        config = load_autofill_config(path)
        assert config.min_gap_weeks_between_stints == 4
        assert config.weight_preference == DEFAULT_AUTO_FILL_CONFIG.weight_preference

    @pytest.mark.parametrize("data", [
        {"weight_preference": -1},
        {"min_gap_weeks_between_stints": -2},
        {"weight_holiday_parity": "high"},
        {"unknown_weight": 3},
    ])
    def test_invalid_values_rejected(self, tmp_path, data):
        """Negative, non-numeric or unknown keys raise ValueError"""
        path = write_json(tmp_path / "cfg.json", data)
        with pytest.raises(ValueError):
            load_autofill_config(path)


class TestLoadSnapshot:

    def test_typed_records(self, tmp_path):
        """Snapshot JSON becomes typed weeks, cells, maps and overrides"""
        snap = load_snapshot(write_json(tmp_path / "snap.json", sample_snapshot()))
        assert snap.fiscal_year_id == "fy2027"
        assert [w.week_number for w in snap.weeks] == [1, 2]
        assert snap.rotations[0].abbreviation == "MICU"
        assert snap.physicians[1].is_active is False
        assert snap.cells[0].source is AssignmentSource.MANUAL
        assert snap.cells[0].is_fixed
        assert not snap.cells[1].is_fixed
        assert snap.availability_map["p1"]["w2"] is Availability.RED
        assert snap.preference_map["p1"]["r1"].preference_rank == 1
        assert snap.preference_map["p1"]["r1"].deprioritize is True
        assert snap.clinic_cfte_map == {"p1": 0.2}
        assert snap.prior_year_assignments == [("pw47", "p1")]
        assert snap.prior_year_events[0].name == "Thanksgiving Day"
        assert snap.consecutive_overrides.get_max_consecutive_weeks(snap.physicians[0], snap.rotations[0]) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "nope.json")

    def test_missing_section(self, tmp_path):
        """Snapshot without a required section raises ValueError"""
        data = sample_snapshot()
        del data["cells"]
        with pytest.raises(ValueError):
            load_snapshot(write_json(tmp_path / "snap.json", data))

    @pytest.mark.parametrize("mutate", [
        lambda d: d["availability"]["p1"].update({"w1": "purple"}),
        lambda d: d["cells"][0].update({"source": "imported"}),
        lambda d: d["weeks"].append({"id": "w3"}),
        lambda d: d["weeks"].append({"id": "w1", "week_number": 9}),
        lambda d: d["target_cfte"].update({"p1": "lots"}),
    ])
    def test_malformed_entries(self, tmp_path, mutate):
        """Bad enum values, duplicate or incomplete weeks and bad cFTE raise ValueError"""
        data = sample_snapshot()
        mutate(data)
        with pytest.raises(ValueError):
            load_snapshot(write_json(tmp_path / "snap.json", data))
