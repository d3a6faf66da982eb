"""
Physician Rotation Auto-Fill Engine

Modules:
- models: Typed inputs (weeks, rotations, physicians, cells) and result records
- schedule_config: AutoFillConfig weights and solver tunables
- consecutive / holidays / rng: Helpers the solver depends on
- scorer: Weighted multi-factor candidate scoring
- solver: Multi-pass greedy solver and run metrics
- physician: Single-physician auto-fill adapter and warnings
- constraints: Post-run audit of hard and soft constraints
- config / report / dry_run: JSON loading, exports, CLI
"""

from .models import (
    Availability,
    AssignmentSource,
    Week,
    Rotation,
    Physician,
    AssignmentCell,
    RotationPreference,
    CalendarEvent,
    ConsecutiveWeekRule,
    ScoreBreakdown,
    ScoredCandidate,
    AutoFillAssignment,
    UnfilledCell,
    AutoFillMetrics,
    AutoFillResult,
)

from .schedule_config import AutoFillConfig, DEFAULT_AUTO_FILL_CONFIG

from .consecutive import ConsecutiveWeekOverrides, would_exceed_max_consecutive_weeks

from .holidays import (
    identify_holiday_weeks,
    identify_all_holiday_weeks,
    build_prior_year_holiday_map,
    compute_holiday_parity_scores,
)

from .rng import hash_string_to_seed, create_seeded_rng, seeded_shuffle

from .scorer import Candidate, ScoringContext, score_candidate

from .solver import run_auto_fill

from .physician import (
    prepare_assignments_for_physician_auto_fill,
    run_physician_auto_fill,
    build_physician_auto_fill_warnings,
)

from .cfte import calculate_total_cfte, get_cfte_status

from .constraints import ConstraintChecker

from .config import load_autofill_config, save_autofill_config, load_snapshot

__all__ = [
    "Availability",
    "AssignmentSource",
    "Week",
    "Rotation",
    "Physician",
    "AssignmentCell",
    "RotationPreference",
    "CalendarEvent",
    "ConsecutiveWeekRule",
    "ScoreBreakdown",
    "ScoredCandidate",
    "AutoFillAssignment",
    "UnfilledCell",
    "AutoFillMetrics",
    "AutoFillResult",
    "AutoFillConfig",
    "DEFAULT_AUTO_FILL_CONFIG",
    "ConsecutiveWeekOverrides",
    "would_exceed_max_consecutive_weeks",
    "identify_holiday_weeks",
    "identify_all_holiday_weeks",
    "build_prior_year_holiday_map",
    "compute_holiday_parity_scores",
    "hash_string_to_seed",
    "create_seeded_rng",
    "seeded_shuffle",
    "Candidate",
    "ScoringContext",
    "score_candidate",
    "run_auto_fill",
    "prepare_assignments_for_physician_auto_fill",
    "run_physician_auto_fill",
    "build_physician_auto_fill_warnings",
    "calculate_total_cfte",
    "get_cfte_status",
    "ConstraintChecker",
    "load_autofill_config",
    "save_autofill_config",
    "load_snapshot",
]
