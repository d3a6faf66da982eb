"""
Tests for candidate scoring (components, weighting, ordering)
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill.models import Availability, Rotation, RotationPreference
from autofill.schedule_config import AutoFillConfig
from autofill.scorer import (
    Candidate,
    ScoringContext,
    rank_candidates,
    rank_multiplier,
    score_candidate,
    score_gap_enforcement,
    score_holiday_parity,
    score_rotation_variety,
    score_workload_spread,
)

ROTATION = Rotation(id="r1", cfte_per_week=0.1)


def _score(availability=Availability.GREEN, preference=None, context=None, holidays=(), pid="p1"):
    return score_candidate(
        Candidate(physician_id=pid, availability=availability, headroom=1.0),
        ROTATION,
        10,
        list(holidays),
        preference,
        context or ScoringContext(),
    )


class TestCombinedScore:

    def test_green_beats_yellow(self):
        """Green availability outscores yellow, all else equal"""
        assert _score(Availability.GREEN).total_score > _score(Availability.YELLOW).total_score

    def test_rank_one_beats_unranked(self):
        """Rank 1 earns more than no rank"""
        ranked = _score(preference=RotationPreference(preference_rank=1))
        unranked = _score(preference=RotationPreference())
        assert ranked.total_score > unranked.total_score

    def test_reference_value(self):
        """Default weights, green, unranked, fresh context"""
        # preference 75, parity 50, workload 50, variety 100, gap 100
        assert _score().total_score == pytest.approx(70.0)

    def test_deprioritize_penalty(self):
        """Deprioritized loses the flat 30 points"""
        plain = _score()
        flagged = _score(preference=RotationPreference(deprioritize=True))
        assert plain.total_score - flagged.total_score == pytest.approx(30.0)
        assert flagged.breakdown.deprioritize == 0.0
        assert plain.breakdown.deprioritize == 100.0

    def test_zero_weights_score_neutral(self):
        """All weights zero collapses the total to 50"""
        config = AutoFillConfig(
            weight_preference=0, weight_holiday_parity=0, weight_workload_spread=0,
            weight_rotation_variety=0, weight_gap_enforcement=0,
        )
        assert _score(context=ScoringContext(config=config)).total_score == pytest.approx(50.0)

    @pytest.mark.parametrize("availability", [Availability.GREEN, Availability.YELLOW])
    @pytest.mark.parametrize("preference", [
        RotationPreference(),
        RotationPreference(preference_rank=1),
        RotationPreference(preference_rank=20, deprioritize=True),
    ])
    def test_bounds(self, availability, preference):
        """Total and every component stay within [0, 100]"""
        scored = _score(availability, preference)
        assert 0.0 <= scored.total_score <= 100.0
        for value in scored.breakdown.as_dict().values():
            assert 0.0 <= value <= 100.0


class TestComponents:

    def test_rank_multiplier(self):
        assert rank_multiplier(1) == pytest.approx(1.0)
        assert rank_multiplier(5) == pytest.approx(0.875)
        assert rank_multiplier(9) == pytest.approx(0.75)
        assert rank_multiplier(50) == pytest.approx(0.75)
        assert rank_multiplier(None) == pytest.approx(0.75)

    def test_holiday_parity_mapping(self):
        """Bias -50 maps to 0, +30 to 100, 0 to 62.5"""
        parity = {"p1": {"thanksgiving day": -50}, "p2": {"thanksgiving day": 30}, "p3": {"thanksgiving day": 0}}
        assert score_holiday_parity("p1", ["Thanksgiving Day"], parity) == pytest.approx(0.0)
        assert score_holiday_parity("p2", ["Thanksgiving Day"], parity) == pytest.approx(100.0)
        assert score_holiday_parity("p3", ["Thanksgiving Day"], parity) == pytest.approx(62.5)

    def test_holiday_parity_neutral_cases(self):
        """No holiday, no history or no matching name -> 50"""
        parity = {"p1": {"thanksgiving day": -50}}
        assert score_holiday_parity("p1", [], parity) == 50.0
        assert score_holiday_parity("p9", ["Thanksgiving Day"], parity) == 50.0
        assert score_holiday_parity("p1", ["Christmas Day"], parity) == 50.0

    def test_workload_spread_decreases_with_load(self):
        def ctx(weeks):
            return ScoringContext(week_count_by_physician={"p1": weeks}, total_physicians=2, total_weeks_to_fill=4)
        assert score_workload_spread("p1", ctx(0)) == pytest.approx(100.0)
        assert score_workload_spread("p1", ctx(2)) == pytest.approx(50.0)
        assert score_workload_spread("p1", ctx(4)) == pytest.approx(0.0)

    def test_workload_spread_weighted_by_target(self):
        """Same weeks held weigh heavier on the half-time physician"""
        context = ScoringContext(
            week_count_by_physician={"full": 2, "half": 2},
            total_physicians=2,
            total_weeks_to_fill=4,
            target_cfte_map={"full": 1.0, "half": 0.5},
            avg_target_cfte=0.75,
        )
        assert score_workload_spread("full", context) > score_workload_spread("half", context)

    def test_rotation_variety(self):
        context = ScoringContext(
            week_count_by_physician={"p1": 4},
            rotation_count_by_physician={"p1": {"r1": 1}},
        )
        assert score_rotation_variety("p1", "r1", context) == pytest.approx(75.0)
        assert score_rotation_variety("p2", "r1", context) == pytest.approx(100.0)

    def test_gap_enforcement(self):
        """Below the minimum gap is penalized; 4x the minimum earns full credit"""
        context = ScoringContext(rotation_weeks_by_physician={"p1": {"r1": {10}}})
        assert score_gap_enforcement("p1", "r1", 11, context) == pytest.approx(25.0)
        assert score_gap_enforcement("p1", "r1", 12, context) == pytest.approx(50.0)
        assert score_gap_enforcement("p1", "r1", 18, context) == pytest.approx(100.0)
        assert score_gap_enforcement("p1", "r2", 11, context) == pytest.approx(100.0)

    def test_gap_measured_to_nearest_stint(self):
        """Week next to an earlier stint scores below a week well clear of both"""
        context = ScoringContext(rotation_weeks_by_physician={"p1": {"r1": {2, 10}}})
        adjacent = score_gap_enforcement("p1", "r1", 3, context)
        spaced = score_gap_enforcement("p1", "r1", 6, context)
        assert adjacent == pytest.approx(25.0)
        assert spaced == pytest.approx(200.0 / 3)
        assert adjacent < spaced
        assert score_gap_enforcement("p1", "r1", 9, context) == pytest.approx(25.0)

    def test_gap_empty_history_is_full_credit(self):
        context = ScoringContext(rotation_weeks_by_physician={"p1": {"r1": set()}})
        assert score_gap_enforcement("p1", "r1", 5, context) == pytest.approx(100.0)


class TestRanking:

    def test_ties_break_on_lowest_id(self):
        """Equal scores ordered by physician id"""
        scored = [_score(pid="p3"), _score(pid="p1"), _score(pid="p2")]
        assert [s.physician_id for s in rank_candidates(scored)] == ["p1", "p2", "p3"]

    def test_highest_first(self):
        low = _score(Availability.YELLOW, pid="a")
        high = _score(Availability.GREEN, pid="b")
        assert rank_candidates([low, high])[0].physician_id == "b"
