"""
holidays.py — Holiday week identification and prior-year parity

Flow per run:
  1. identify_holiday_weeks(events, config.major_holiday_names)   this year
  2. identify_all_holiday_weeks(prior_events)                     last year
  3. build_prior_year_holiday_map(prior_assignments, step 2)
  4. compute_holiday_parity_scores(step 3, names, candidates)     once
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import FEDERAL_HOLIDAY, CalendarEvent, HolidayWeekMap, ParityScoreMap
from .schedule_config import (
    PARITY_NEUTRAL,
    PARITY_OTHER_HOLIDAY_BONUS,
    PARITY_REPEAT_PENALTY,
)

logger = logging.getLogger(__name__)


def _is_countable(event: CalendarEvent) -> bool:
    return event.is_approved and event.category == FEDERAL_HOLIDAY


def identify_holiday_weeks(
    events: Iterable[CalendarEvent],
    major_holiday_names: Iterable[str],
) -> HolidayWeekMap:
    """
    Map week_id -> [holiday names] for approved federal holidays whose name
    matches (case-insensitively) a configured major holiday. Names keep the
    case recorded on the event.
    """
    major = {n.lower() for n in major_holiday_names}
    weeks: HolidayWeekMap = {}
    for event in events:
        if not _is_countable(event):
            continue
        if event.name.lower() not in major:
            continue
        weeks.setdefault(event.week_id, []).append(event.name)
    return weeks


def identify_all_holiday_weeks(events: Iterable[CalendarEvent]) -> HolidayWeekMap:
    """Same grouping as identify_holiday_weeks, without the name filter."""
    weeks: HolidayWeekMap = {}
    for event in events:
        if not _is_countable(event):
            continue
        weeks.setdefault(event.week_id, []).append(event.name)
    return weeks


def build_prior_year_holiday_map(
    prior_assignments: Iterable[Tuple[str, Optional[str]]],
    prior_holiday_weeks: HolidayWeekMap,
) -> Dict[str, List[str]]:
    """
    Map holiday_name_lower -> [physician ids] who held any assignment in a
    prior-year week carrying that holiday.

    prior_assignments: (week_id, physician_id) pairs; unbound pairs are skipped.
    """
    week_physicians: Dict[str, List[str]] = {}
    for week_id, physician_id in prior_assignments:
        if not physician_id:
            continue
        bucket = week_physicians.setdefault(week_id, [])
        if physician_id not in bucket:
            bucket.append(physician_id)

    result: Dict[str, List[str]] = {}
    for week_id, holiday_names in prior_holiday_weeks.items():
        physicians = week_physicians.get(week_id)
        if not physicians:
            continue
        for holiday_name in holiday_names:
            worked = result.setdefault(holiday_name.lower(), [])
            for pid in physicians:
                if pid not in worked:
                    worked.append(pid)

    logger.debug(f"Prior-year holiday map: {len(result)} holidays")
    return result


def compute_holiday_parity_scores(
    prior_year_holiday_map: Dict[str, List[str]],
    major_holiday_names: Sequence[str],
    candidate_physician_ids: Iterable[str],
) -> ParityScoreMap:
    """
    Per physician, per major holiday (lower-cased):
      -50 worked this holiday last year
      +30 worked some other holiday last year
        0 worked no holiday last year (or there is no prior-year data)
    """
    worked_by_physician: Dict[str, Set[str]] = {}
    for holiday_name, physician_ids in prior_year_holiday_map.items():
        for pid in physician_ids:
            worked_by_physician.setdefault(pid, set()).add(holiday_name.lower())

    holidays = [n.lower() for n in major_holiday_names]
    scores: ParityScoreMap = {}
    for pid in candidate_physician_ids:
        worked = worked_by_physician.get(pid, set())
        per_holiday: Dict[str, int] = {}
        for holiday in holidays:
            if holiday in worked:
                per_holiday[holiday] = PARITY_REPEAT_PENALTY
            elif worked:
                per_holiday[holiday] = PARITY_OTHER_HOLIDAY_BONUS
            else:
                per_holiday[holiday] = PARITY_NEUTRAL
        scores[pid] = per_holiday

    return scores
