"""
Tests for consecutive-week run checks and the override table
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill.consecutive import (
    ConsecutiveWeekOverrides,
    longest_consecutive_run,
    would_exceed_max_consecutive_weeks,
)
from autofill.models import ConsecutiveWeekRule, Physician, Rotation

ALL_WEEKS = list(range(1, 11))


class TestLongestRun:

    def test_empty(self):
        assert longest_consecutive_run(ALL_WEEKS, []) == 0

    def test_two_runs(self):
        assert longest_consecutive_run(ALL_WEEKS, [1, 2, 5, 6, 7]) == 3

    def test_missing_week_breaks_run(self):
        """A week absent from the fiscal year splits the run"""
        # week 3 does not exist in this fiscal year
        assert longest_consecutive_run([1, 2, 4, 5], [2, 4]) == 1


class TestWouldExceed:

    def test_third_adjacent_week_rejected(self):
        """Weeks {1,2} held, max 2: week 3 is one too many"""
        assert would_exceed_max_consecutive_weeks(ALL_WEEKS, {1, 2}, 3, 2) is True

    def test_non_adjacent_week_accepted(self):
        """Weeks {1,2} held, max 2: week 5 starts a new run"""
        assert would_exceed_max_consecutive_weeks(ALL_WEEKS, {1, 2}, 5, 2) is False

    def test_bridging_two_runs(self):
        """Filling the hole joins two runs into one of 5"""
        assert would_exceed_max_consecutive_weeks(ALL_WEEKS, {1, 2, 4, 5}, 3, 4) is True

    def test_within_limit(self):
        assert would_exceed_max_consecutive_weeks(ALL_WEEKS, {1, 2}, 3, 3) is False

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_means_unlimited(self, limit):
        """Max of zero or below never trips"""
        assert would_exceed_max_consecutive_weeks(ALL_WEEKS, set(range(1, 10)), 10, limit) is False

    def test_does_not_mutate_assigned(self):
        assigned = {1, 2}
        would_exceed_max_consecutive_weeks(ALL_WEEKS, assigned, 3, 2)
        assert assigned == {1, 2}


class TestOverrides:

    @pytest.fixture
    def physician(self):
        return Physician(id="p1", initials="AB")

    @pytest.fixture
    def rotation(self):
        return Rotation(id="r1", cfte_per_week=0.02, max_consecutive_weeks=2, abbreviation="MICU")

    def test_default_from_rotation(self, physician, rotation):
        """No rule -> rotation default"""
        overrides = ConsecutiveWeekOverrides()
        assert overrides.get_max_consecutive_weeks(physician, rotation) == 2
        assert not overrides.has_override(physician, rotation)

    def test_match_by_initials_and_abbreviation(self, physician, rotation):
        """Rule keyed by initials and abbreviation applies"""
        overrides = ConsecutiveWeekOverrides([ConsecutiveWeekRule("AB", "MICU", 1)])
        assert overrides.get_max_consecutive_weeks(physician, rotation) == 1
        assert overrides.has_override(physician, rotation)

    def test_id_rule_wins(self, physician, rotation):
        """Rule keyed by ids takes priority over initials/abbreviation"""
        overrides = ConsecutiveWeekOverrides([
            ConsecutiveWeekRule("AB", "MICU", 1),
            ConsecutiveWeekRule("p1", "r1", 3),
        ])
        assert overrides.get_max_consecutive_weeks(physician, rotation) == 3

    def test_other_physician_unaffected(self, rotation):
        overrides = ConsecutiveWeekOverrides([ConsecutiveWeekRule("AB", "MICU", 1)])
        other = Physician(id="p2", initials="CD")
        assert overrides.get_max_consecutive_weeks(other, rotation) == 2

    def test_duplicate_rule_keeps_last(self, physician, rotation):
        """Later duplicate rule replaces the earlier one"""
        overrides = ConsecutiveWeekOverrides([
            ConsecutiveWeekRule("AB", "MICU", 1),
            ConsecutiveWeekRule("AB", "MICU", 4),
        ])
        assert len(overrides) == 1
        assert overrides.get_max_consecutive_weeks(physician, rotation) == 4
