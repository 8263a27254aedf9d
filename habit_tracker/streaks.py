"""Streak engine.

A habit's streak is a pure function of the dates on which it was completed.
``recalculate`` derives it from the full history and is the source of truth;
``advance`` is the O(1) update applied for each new completion and must give
the same answer as ``recalculate`` for completions logged in date order.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: Optional[date] = None

    @property
    def is_empty(self) -> bool:
        return self.last_completed_date is None


EMPTY_STREAK = StreakState()


def is_backfill(state: StreakState, event_date: date) -> bool:
    """True when ``event_date`` lies before the last completed day."""
    return state.last_completed_date is not None and event_date < state.last_completed_date


def advance(state: StreakState, event_date: date) -> StreakState:
    """Apply one completed day to ``state``.

    The day after the last completion extends the streak, the same day holds
    it, a later day with a gap resets it to 1. A backfilled day (before the
    last completion) holds the counts and becomes the last-completed date.
    """
    if state.last_completed_date is None:
        current = 1
        transition = "start"
    else:
        gap = (event_date - state.last_completed_date).days
        if gap == 1:
            current = state.current_streak + 1
            transition = "extend"
        elif gap <= 0:
            current = state.current_streak
            transition = "hold"
        else:
            current = 1
            transition = "reset"

    new_state = StreakState(
        current_streak=current,
        longest_streak=max(current, state.longest_streak),
        last_completed_date=event_date,
    )
    logger.debug("streak %s on %s: %s -> %s", transition, event_date, state, new_state)
    return new_state


def recalculate(completed_dates: Iterable[date]) -> StreakState:
    """Rebuild the streak from every completed date of a habit."""
    dates = sorted(set(completed_dates), reverse=True)
    if not dates:
        return EMPTY_STREAK

    current = None
    longest = 0
    run = 1
    for newer, older in zip(dates, dates[1:]):
        if newer - older == ONE_DAY:
            run += 1
            continue
        if current is None:
            current = run
        longest = max(longest, run)
        run = 1
    if current is None:
        current = run
    longest = max(longest, run)

    return StreakState(current_streak=current, longest_streak=longest, last_completed_date=dates[0])


def effective_streak(state: StreakState, today: date) -> int:
    """The current streak as of ``today``.

    Stored streaks are only reset by the next completion, so a streak whose
    last completion is older than yesterday reads as 0 here.
    """
    if state.last_completed_date is None:
        return 0
    if today - state.last_completed_date > ONE_DAY:
        return 0
    return state.current_streak
