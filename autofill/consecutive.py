"""
consecutive.py — Consecutive-week run checks and per-physician overrides

A physician's run on one rotation is the longest stretch of consecutive
week numbers (among the weeks that exist in the fiscal year) they hold on
that rotation. The cap comes from the override table when a rule matches,
else from Rotation.max_consecutive_weeks.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .models import ConsecutiveWeekRule, Physician, Rotation

logger = logging.getLogger(__name__)


def longest_consecutive_run(
    all_week_numbers: Iterable[int],
    assigned_week_numbers: Iterable[int],
) -> int:
    """Longest run of adjacent week numbers that are all in assigned_week_numbers."""
    assigned = set(assigned_week_numbers)
    longest = 0
    current = 0
    last: Optional[int] = None

    for week_number in sorted(set(all_week_numbers)):
        if week_number not in assigned:
            current = 0
            last = None
            continue
        if last is not None and week_number == last + 1:
            current += 1
        else:
            current = 1
        last = week_number
        longest = max(longest, current)

    return longest


def would_exceed_max_consecutive_weeks(
    all_week_numbers: Iterable[int],
    assigned_week_numbers: Iterable[int],
    candidate_week_number: int,
    max_consecutive_weeks: int,
) -> bool:
    """
    True if adding candidate_week_number to the assigned set creates a run
    longer than max_consecutive_weeks. A max of 0 or less means no limit.
    """
    if max_consecutive_weeks <= 0:
        return False
    assigned = set(assigned_week_numbers)
    assigned.add(candidate_week_number)
    return longest_consecutive_run(all_week_numbers, assigned) > max_consecutive_weeks


class ConsecutiveWeekOverrides:
    """
    Lookup of per-physician, per-rotation max-consecutive-week overrides.

    Rules may name the physician by id or initials and the rotation by id or
    abbreviation. Id matches win over initials/abbreviation matches.
    """

    def __init__(self, rules: Optional[Iterable[ConsecutiveWeekRule]] = None):
        self._rules: Dict[Tuple[str, str], int] = {}
        for rule in rules or ():
            key = (rule.physician, rule.rotation)
            if key in self._rules:
                logger.warning(
                    f"Duplicate consecutive-week rule for {rule.physician}/{rule.rotation}; "
                    f"keeping {rule.max_consecutive_weeks}"
                )
            self._rules[key] = rule.max_consecutive_weeks

    def __len__(self) -> int:
        return len(self._rules)

    def get_max_consecutive_weeks(self, physician: Physician, rotation: Rotation) -> int:
        physician_keys: List[str] = [physician.id]
        if physician.initials:
            physician_keys.append(physician.initials)
        rotation_keys: List[str] = [rotation.id]
        if rotation.abbreviation:
            rotation_keys.append(rotation.abbreviation)

        for pkey in physician_keys:
            for rkey in rotation_keys:
                override = self._rules.get((pkey, rkey))
                if override is not None:
                    return override
        return rotation.max_consecutive_weeks

    def has_override(self, physician: Physician, rotation: Rotation) -> bool:
        return any(
            (p, r) in self._rules
            for p in (physician.id, physician.initials) if p
            for r in (rotation.id, rotation.abbreviation) if r
        )
