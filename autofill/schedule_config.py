"""
schedule_config.py — Auto-Fill Weights, Holiday List & Solver Tunables

WEIGHTS (reference configuration sums to 100)
─────────────────────────────────────────────
  preference        30   availability colour × rotation rank
  holiday_parity    25   prior-year holiday coverage bias
  workload_spread   20   distance from cFTE-weighted fair share of weeks
  rotation_variety  15   concentration on the rotation being scored
  gap_enforcement   10   spacing between stints on the same rotation

  Weights need not sum to 100; the scorer divides by their total and clamps
  the result to [0, 100]. All-zero weights score every candidate 50.

HARD CONSTRAINTS (never relaxed by any pass)
────────────────────────────────────────────
  red availability, physician active-week window, "avoid" preference,
  cFTE cap (clinic + rotation <= target, CFTE_EPSILON tolerance),
  max consecutive weeks (override table, else rotation default),
  one rotation per physician per week.

PARITY BIAS (per physician per major holiday)
─────────────────────────────────────────────
  worked this holiday last year        -50
  worked a different holiday last year +30
  worked no holiday last year            0
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple

# ---------------------------------------------------------------------------
# Solver tunables
# ---------------------------------------------------------------------------
CFTE_EPSILON = 0.000001
DEFAULT_MAX_SWAP_ITERATIONS = 500
SWAP_MIN_IMPROVEMENT = 1.0

# ---------------------------------------------------------------------------
# Parity bias
# ---------------------------------------------------------------------------
PARITY_REPEAT_PENALTY = -50
PARITY_OTHER_HOLIDAY_BONUS = 30
PARITY_NEUTRAL = 0

# ---------------------------------------------------------------------------
# Scorer constants
# ---------------------------------------------------------------------------
NEUTRAL_SCORE = 50.0
AVAILABILITY_SCORES: Dict[str, float] = {"green": 100.0, "yellow": 40.0}
RANK_NEUTRAL_MULTIPLIER = 0.75
RANK_SPAN = 8
DEPRIORITIZE_PENALTY = 30.0

# ---------------------------------------------------------------------------
# cFTE compliance band (fraction of target)
# ---------------------------------------------------------------------------
CFTE_UNDER_RATIO = 0.95
CFTE_OVER_RATIO = 1.05


@dataclass(frozen=True)
class AutoFillConfig:
    weight_preference: float = 30
    weight_holiday_parity: float = 25
    weight_workload_spread: float = 20
    weight_rotation_variety: float = 15
    weight_gap_enforcement: float = 10
    major_holiday_names: Tuple[str, ...] = field(
        default=("Thanksgiving Day", "Christmas Day")
    )
    min_gap_weeks_between_stints: int = 2
    enable_swap_optimization: bool = False
    max_swap_iterations: int = DEFAULT_MAX_SWAP_ITERATIONS

    @property
    def total_weight(self) -> float:
        return (
            self.weight_preference
            + self.weight_holiday_parity
            + self.weight_workload_spread
            + self.weight_rotation_variety
            + self.weight_gap_enforcement
        )

    def with_overrides(self, **changes: Any) -> "AutoFillConfig":
        if "major_holiday_names" in changes:
            changes["major_holiday_names"] = tuple(changes["major_holiday_names"])
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weight_preference": self.weight_preference,
            "weight_holiday_parity": self.weight_holiday_parity,
            "weight_workload_spread": self.weight_workload_spread,
            "weight_rotation_variety": self.weight_rotation_variety,
            "weight_gap_enforcement": self.weight_gap_enforcement,
            "major_holiday_names": list(self.major_holiday_names),
            "min_gap_weeks_between_stints": self.min_gap_weeks_between_stints,
            "enable_swap_optimization": self.enable_swap_optimization,
            "max_swap_iterations": self.max_swap_iterations,
        }


DEFAULT_AUTO_FILL_CONFIG = AutoFillConfig()

WEIGHT_KEYS = (
    "weight_preference",
    "weight_holiday_parity",
    "weight_workload_spread",
    "weight_rotation_variety",
    "weight_gap_enforcement",
)
