"""
config.py — Configuration and snapshot loading for the auto-fill engine

Loads the tunable AutoFillConfig from JSON and reads a fiscal-year snapshot
(weeks, rotations, physicians, cells, availability, preferences, cFTE maps,
calendar events, prior-year data, consecutive overrides) into typed records
for dry runs.

Snapshot layout (all keys optional except weeks/rotations/physicians/cells):
  {
    "fiscal_year_id": "fy-2027",
    "weeks":        [{"id": "w1", "week_number": 1}, ...],
    "rotations":    [{"id": "mich", "cfte_per_week": 0.02, "max_consecutive_weeks": 2}, ...],
    "physicians":   [{"id": "p1", "initials": "AB"}, ...],
    "cells":        [{"id": "c1", "week_id": "w1", "rotation_id": "mich",
                      "physician_id": null, "source": null}, ...],
    "availability": {"p1": {"w1": "green"}},
    "preferences":  {"p1": {"mich": {"preference_rank": 1}}},
    "target_cfte":  {"p1": 0.6},
    "clinic_cfte":  {"p1": 0.3},
    "calendar_events": [{"week_id": "w47", "name": "Thanksgiving Day"}],
    "prior_year": {"assignments": [{"week_id": "pw47", "physician_id": "p1"}],
                   "calendar_events": [...]},
    "consecutive_overrides": [{"physician": "AB", "rotation": "MICU", "max_consecutive_weeks": 1}]
  }
"""

import json
import logging
from dataclasses import dataclass, field, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from .consecutive import ConsecutiveWeekOverrides
from .models import (
    AssignmentCell,
    AssignmentSource,
    Availability,
    AvailabilityMap,
    CalendarEvent,
    ConsecutiveWeekRule,
    Physician,
    PreferenceMap,
    Rotation,
    RotationPreference,
    Week,
)
from .schedule_config import DEFAULT_AUTO_FILL_CONFIG, WEIGHT_KEYS, AutoFillConfig

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_AUTOFILL_CONFIG_PATH = DEFAULT_CONFIG_DIR / "autofill_config.json"

METADATA_KEYS = ("last_updated", "notes")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# AutoFillConfig
# ---------------------------------------------------------------------------

def validate_autofill_config(config: AutoFillConfig) -> None:
    """Raise ValueError for negative weights or a negative minimum gap."""
    for key in WEIGHT_KEYS + ("min_gap_weeks_between_stints", "max_swap_iterations"):
        if not isinstance(getattr(config, key), (int, float)):
            raise ValueError(f"{key} must be a number, got {getattr(config, key)!r}")
    for key in WEIGHT_KEYS:
        if getattr(config, key) < 0:
            raise ValueError(f"{key} must be non-negative, got {getattr(config, key)}")
    if config.min_gap_weeks_between_stints < 0:
        raise ValueError(
            f"min_gap_weeks_between_stints must be non-negative, "
            f"got {config.min_gap_weeks_between_stints}"
        )
    if config.max_swap_iterations < 0:
        raise ValueError(f"max_swap_iterations must be non-negative, got {config.max_swap_iterations}")


def load_autofill_config(
    config_path: Optional[Path] = None,
) -> AutoFillConfig:
    """Load AutoFillConfig from JSON. Returns defaults if the file is missing."""
    path = Path(config_path) if config_path else DEFAULT_AUTOFILL_CONFIG_PATH
    if not path.exists():
        logger.warning(f"Auto-fill config not found: {path}. Using defaults.")
        return DEFAULT_AUTO_FILL_CONFIG

    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Auto-fill config must be a JSON object: {path}")

    known = {f.name for f in fields(AutoFillConfig)}
    unknown = sorted(k for k in data if k not in known and k not in METADATA_KEYS)
    if unknown:
        raise ValueError(f"Unknown auto-fill config keys in {path}: {unknown}")

    overrides = {k: v for k, v in data.items() if k in known}
    config = DEFAULT_AUTO_FILL_CONFIG.with_overrides(**overrides)
    validate_autofill_config(config)
    logger.info(f"Loaded auto-fill config from {path}")
    return config


def save_autofill_config(
    config: AutoFillConfig,
    config_path: Optional[Path] = None,
) -> None:
    """Persist AutoFillConfig to JSON with metadata."""
    validate_autofill_config(config)
    path = Path(config_path) if config_path else DEFAULT_AUTOFILL_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    data["last_updated"] = date.today().isoformat()
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Auto-fill config saved to {path}")


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class Snapshot:
    fiscal_year_id: str
    weeks: List[Week]
    rotations: List[Rotation]
    physicians: List[Physician]
    cells: List[AssignmentCell]
    availability_map: AvailabilityMap = field(default_factory=dict)
    preference_map: PreferenceMap = field(default_factory=dict)
    target_cfte_map: Dict[str, float] = field(default_factory=dict)
    clinic_cfte_map: Dict[str, float] = field(default_factory=dict)
    calendar_events: List[CalendarEvent] = field(default_factory=list)
    prior_year_assignments: List[Tuple[str, str]] = field(default_factory=list)
    prior_year_events: List[CalendarEvent] = field(default_factory=list)
    consecutive_overrides: ConsecutiveWeekOverrides = field(default_factory=ConsecutiveWeekOverrides)


def _build(cls: Type[T], raw: Any, what: str) -> T:
    if not isinstance(raw, dict):
        raise ValueError(f"{what} entry must be an object, got {raw!r}")
    try:
        return cls(**raw)
    except TypeError as e:
        raise ValueError(f"Malformed {what} entry {raw!r}: {e}") from e


def _parse_enum(enum_cls, value: Any, what: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        raise ValueError(f"Unknown {what} value: {value!r}") from e


def _parse_cell(raw: Any) -> AssignmentCell:
    if isinstance(raw, dict) and raw.get("source") is not None:
        raw = dict(raw, source=_parse_enum(AssignmentSource, raw["source"], "assignment source"))
    return _build(AssignmentCell, raw, "cell")


def _parse_availability(raw: Dict[str, Dict[str, Any]]) -> AvailabilityMap:
    return {
        pid: {wid: _parse_enum(Availability, v, "availability") for wid, v in weeks.items()}
        for pid, weeks in raw.items()
    }


def _parse_preferences(raw: Dict[str, Dict[str, Any]]) -> PreferenceMap:
    return {
        pid: {rid: _build(RotationPreference, pref, "preference") for rid, pref in prefs.items()}
        for pid, prefs in raw.items()
    }


def _parse_cfte_map(raw: Dict[str, Any], what: str) -> Dict[str, float]:
    out = {}
    for pid, value in raw.items():
        try:
            out[pid] = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{what} for {pid} must be a number, got {value!r}") from e
    return out


def _parse_prior_assignment(raw: Any) -> Tuple[str, str]:
    if not isinstance(raw, dict) or "week_id" not in raw or "physician_id" not in raw:
        raise ValueError(f"Prior-year assignment needs week_id and physician_id: {raw!r}")
    return raw["week_id"], raw["physician_id"]


def load_snapshot(snapshot_path: Path) -> Snapshot:
    """
    Load one fiscal year's engine inputs from a JSON snapshot.

    Raises:
        FileNotFoundError: snapshot file missing
        ValueError:        required section missing or an entry is malformed
    """
    path = Path(snapshot_path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot must be a JSON object: {path}")

    for key in ("weeks", "rotations", "physicians", "cells"):
        if key not in data:
            raise ValueError(f"Snapshot {path} is missing required section '{key}'")

    prior = data.get("prior_year") or {}
    rules = [_build(ConsecutiveWeekRule, r, "consecutive override") for r in data.get("consecutive_overrides", [])]

    snapshot = Snapshot(
        fiscal_year_id=str(data.get("fiscal_year_id", "")),
        weeks=[_build(Week, w, "week") for w in data["weeks"]],
        rotations=[_build(Rotation, r, "rotation") for r in data["rotations"]],
        physicians=[_build(Physician, p, "physician") for p in data["physicians"]],
        cells=[_parse_cell(c) for c in data["cells"]],
        availability_map=_parse_availability(data.get("availability", {})),
        preference_map=_parse_preferences(data.get("preferences", {})),
        target_cfte_map=_parse_cfte_map(data.get("target_cfte", {}), "target_cfte"),
        clinic_cfte_map=_parse_cfte_map(data.get("clinic_cfte", {}), "clinic_cfte"),
        calendar_events=[_build(CalendarEvent, e, "calendar event") for e in data.get("calendar_events", [])],
        prior_year_assignments=[_parse_prior_assignment(a) for a in prior.get("assignments", [])],
        prior_year_events=[_build(CalendarEvent, e, "calendar event") for e in prior.get("calendar_events", [])],
        consecutive_overrides=ConsecutiveWeekOverrides(rules),
    )

    week_ids = {w.id for w in snapshot.weeks}
    if len(week_ids) != len(snapshot.weeks):
        raise ValueError(f"Snapshot {path} has duplicate week ids")

    logger.info(
        f"Loaded snapshot {snapshot.fiscal_year_id or path.name}: "
        f"{len(snapshot.weeks)} weeks, {len(snapshot.rotations)} rotations, "
        f"{len(snapshot.physicians)} physicians, {len(snapshot.cells)} cells"
    )
    return snapshot
