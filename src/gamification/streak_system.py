"""
Study Streak Tracking

Folds a study day into a user's streak:
- first activity starts a streak of 1
- same day: no change (already counted)
- next day: streak continues
- any larger gap: streak resets to 1
- activity dated before the last study day (late delivery): no change

Also tracks best streak and the weekend days studied in the current ISO week.
"""

from typing import List, NamedTuple, Optional
from datetime import date, timedelta
import logging

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


class StreakState(NamedTuple):
    current_streak: int
    best_streak: int
    last_activity_date: Optional[date]


def advance_streak(state: StreakState, activity_date: date) -> StreakState:
    """
    Return the streak state after studying on activity_date

    Args:
        state: Streak before the activity
        activity_date: Local calendar day of the activity

    Returns:
        New StreakState (input is not modified)
    """
    current = state.current_streak
    last_date = state.last_activity_date

    # First activity
    if last_date is None:
        current = 1
        last_date = activity_date

    # Same day, or a late event for a day already behind us
    elif activity_date <= last_date:
        if activity_date < last_date:
            logger.debug(
                f"Late study activity for {activity_date} (last study day {last_date}), streak unchanged"
            )

    # Next day continues the streak
    elif activity_date == last_date + timedelta(days=1):
        current += 1
        last_date = activity_date

    # Gap: streak broken
    else:
        gap_days = (activity_date - last_date).days
        logger.debug(f"Streak broken after {current} days, gap was {gap_days} days")
        current = 1
        last_date = activity_date

    return StreakState(
        current_streak=current,
        best_streak=max(state.best_streak, current),
        last_activity_date=last_date,
    )


def update_weekend_days(weekend_days: List[date], activity_date: date) -> List[date]:
    """
    Keep only weekend days from activity_date's ISO week, adding activity_date if it is one

    Returns:
        New sorted list of studied weekend dates in the current week
    """
    week = activity_date.isocalendar()[:2]
    kept = {d for d in weekend_days if d.isocalendar()[:2] == week}
    if activity_date.weekday() in (SATURDAY, SUNDAY):
        kept.add(activity_date)
    return sorted(kept)


def studied_whole_weekend(weekend_days: List[date]) -> bool:
    """True when both Saturday and Sunday of the same ISO week were studied"""
    weekdays = {d.weekday() for d in weekend_days}
    weeks = {d.isocalendar()[:2] for d in weekend_days}
    return weekdays == {SATURDAY, SUNDAY} and len(weeks) == 1
