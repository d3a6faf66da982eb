"""
scorer.py — Weighted multi-factor candidate scoring

Every component lands in [0, 100]; the total is the weight-averaged sum of
the five weighted components, less a flat penalty for deprioritized
rotations, clamped to [0, 100]. See schedule_config for the weights.

Red-availability and "avoid" candidates never reach the scorer; the solver
filters them out first.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .models import (
    Availability,
    ParityScoreMap,
    Rotation,
    RotationPreference,
    ScoreBreakdown,
    ScoredCandidate,
)
from .schedule_config import (
    AVAILABILITY_SCORES,
    DEFAULT_AUTO_FILL_CONFIG,
    DEPRIORITIZE_PENALTY,
    NEUTRAL_SCORE,
    PARITY_OTHER_HOLIDAY_BONUS,
    PARITY_REPEAT_PENALTY,
    RANK_NEUTRAL_MULTIPLIER,
    RANK_SPAN,
    AutoFillConfig,
)


@dataclass(frozen=True)
class Candidate:
    physician_id: str
    availability: Availability
    headroom: float


@dataclass
class ScoringContext:
    """Running solver state the scorer reads (never writes)."""
    config: AutoFillConfig = DEFAULT_AUTO_FILL_CONFIG
    parity_scores: ParityScoreMap = field(default_factory=dict)
    week_count_by_physician: Dict[str, int] = field(default_factory=dict)
    rotation_count_by_physician: Dict[str, Dict[str, int]] = field(default_factory=dict)
    rotation_weeks_by_physician: Dict[str, Dict[str, Set[int]]] = field(default_factory=dict)
    total_physicians: int = 0
    total_weeks_to_fill: int = 0
    target_cfte_map: Dict[str, float] = field(default_factory=dict)
    avg_target_cfte: float = 0.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

def score_availability(availability: Availability) -> float:
    return AVAILABILITY_SCORES.get(availability.value, 0.0)


def rank_multiplier(preference_rank: Optional[int]) -> float:
    """Rank 1 -> 1.0, tapering to 0.75 at rank 9+. No rank -> 0.75 (neutral)."""
    if preference_rank is None:
        return RANK_NEUTRAL_MULTIPLIER
    step = max(0.0, 1.0 - (preference_rank - 1) / RANK_SPAN)
    return RANK_NEUTRAL_MULTIPLIER + (1.0 - RANK_NEUTRAL_MULTIPLIER) * step


def score_preference(availability: Availability, preference_rank: Optional[int]) -> float:
    return score_availability(availability) * rank_multiplier(preference_rank)


def score_holiday_parity(
    physician_id: str,
    holiday_names: Sequence[str],
    parity_scores: ParityScoreMap,
) -> float:
    """Mean bias over the week's holidays, mapped -50 -> 0 and +30 -> 100."""
    if not holiday_names:
        return NEUTRAL_SCORE
    per_holiday = parity_scores.get(physician_id)
    if not per_holiday:
        return NEUTRAL_SCORE

    biases = [per_holiday[n.lower()] for n in holiday_names if n.lower() in per_holiday]
    if not biases:
        return NEUTRAL_SCORE

    mean_bias = sum(biases) / len(biases)
    span = PARITY_OTHER_HOLIDAY_BONUS - PARITY_REPEAT_PENALTY
    return _clamp((mean_bias - PARITY_REPEAT_PENALTY) * (100.0 / span))


def score_workload_spread(physician_id: str, context: ScoringContext) -> float:
    """
    Compare weeks held with the physician's target-cFTE-weighted fair share.
    ratio 0 -> 100, ratio 1 (at share) -> 50, ratio 2+ -> 0.
    """
    if context.total_physicians == 0:
        return NEUTRAL_SCORE

    current = context.week_count_by_physician.get(physician_id, 0)
    avg_weeks = context.total_weeks_to_fill / context.total_physicians
    target = context.target_cfte_map.get(physician_id, context.avg_target_cfte)
    if context.avg_target_cfte > 0:
        ideal = (target / context.avg_target_cfte) * avg_weeks
    else:
        ideal = avg_weeks
    if ideal <= 0:
        return NEUTRAL_SCORE

    return _clamp(100.0 - (current / ideal) * 50.0)


def score_rotation_variety(physician_id: str, rotation_id: str, context: ScoringContext) -> float:
    total = context.week_count_by_physician.get(physician_id, 0)
    if total == 0:
        return 100.0
    on_rotation = context.rotation_count_by_physician.get(physician_id, {}).get(rotation_id, 0)
    return _clamp(100.0 - (on_rotation / total) * 100.0)


def score_gap_enforcement(
    physician_id: str,
    rotation_id: str,
    week_number: int,
    context: ScoringContext,
) -> float:
    """
    Distance to the nearest week the physician already holds on this rotation,
    on either side. Below the minimum gap scores under 50; from the minimum up
    to 4x the minimum climbs 50 -> 100.
    """
    held = context.rotation_weeks_by_physician.get(physician_id, {}).get(rotation_id)
    if not held:
        return 100.0

    gap = min(abs(week_number - w) for w in held)
    if gap == 0:
        return NEUTRAL_SCORE

    min_gap = context.config.min_gap_weeks_between_stints
    if gap < min_gap:
        return max(0.0, (gap / min_gap) * 50.0)

    max_bonus_gap = min_gap * 3
    if max_bonus_gap <= 0:
        return 100.0
    return 50.0 + min(50.0, ((gap - min_gap) / max_bonus_gap) * 50.0)


# ---------------------------------------------------------------------------
# Combined score
# ---------------------------------------------------------------------------

def score_candidate(
    candidate: Candidate,
    rotation: Rotation,
    week_number: int,
    holiday_names: Sequence[str],
    preference: Optional[RotationPreference],
    context: ScoringContext,
) -> ScoredCandidate:
    config = context.config
    preference = preference or RotationPreference()
    pid = candidate.physician_id

    breakdown = ScoreBreakdown(
        availability=score_availability(candidate.availability),
        preference=score_preference(candidate.availability, preference.preference_rank),
        holiday_parity=score_holiday_parity(pid, holiday_names, context.parity_scores),
        workload_spread=score_workload_spread(pid, context),
        rotation_variety=score_rotation_variety(pid, rotation.id, context),
        gap_enforcement=score_gap_enforcement(pid, rotation.id, week_number, context),
        deprioritize=0.0 if preference.deprioritize else 100.0,
    )

    total_weight = config.total_weight
    if total_weight > 0:
        weighted = (
            config.weight_preference * breakdown.preference
            + config.weight_holiday_parity * breakdown.holiday_parity
            + config.weight_workload_spread * breakdown.workload_spread
            + config.weight_rotation_variety * breakdown.rotation_variety
            + config.weight_gap_enforcement * breakdown.gap_enforcement
        )
        total = weighted / total_weight
    else:
        total = NEUTRAL_SCORE

    if preference.deprioritize:
        total -= DEPRIORITIZE_PENALTY

    return ScoredCandidate(
        physician_id=pid,
        total_score=_clamp(total),
        breakdown=breakdown,
        availability=candidate.availability,
        headroom=candidate.headroom,
    )


def rank_candidates(scored: List[ScoredCandidate]) -> List[ScoredCandidate]:
    """Highest score first; equal scores by ascending physician id."""
    return sorted(scored, key=_rank_key)


def _rank_key(candidate: ScoredCandidate) -> Tuple[float, str]:
    return (-candidate.total_score, candidate.physician_id)
