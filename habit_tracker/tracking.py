"""Completion logging and streak bookkeeping.

Every mutation here runs as a single unit of work on the caller's session:
the log row and the habit's streak row are written together or not at all.
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from . import config, streaks
from .errors import (
    HabitNotFoundError,
    HabitTrackerError,
    LogNotFoundError,
    ScheduleViolationError,
    TransactionError,
)
from .models import Habit, HabitLog, Streak
from .schedule import decode_active_days, is_countable_day
from .streaks import StreakState

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(session: Session, action: str):
    """Commit on success, roll back on any error."""
    try:
        yield session
        session.commit()
    except HabitTrackerError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Failed to %s, rolled back: %s", action, exc)
        raise TransactionError(f"Failed to {action}") from exc


def get_owned_habit(session: Session, habit_id: int, user_id: int, active_only: bool = False) -> Habit:
    query = select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
    if active_only:
        query = query.where(Habit.is_active == True)  # noqa: E712
    habit = session.exec(query).first()
    if habit is None:
        raise HabitNotFoundError("Habit not found or inactive" if active_only else None)
    return habit


def get_streak_row(session: Session, habit_id: int, user_id: int) -> Streak:
    row = session.exec(
        select(Streak).where(Streak.habit_id == habit_id, Streak.user_id == user_id)
    ).first()
    if row is None:
        row = Streak(habit_id=habit_id, user_id=user_id)
        session.add(row)
    return row


def streak_state(session: Session, habit_id: int, user_id: int) -> StreakState:
    row = session.exec(
        select(Streak).where(Streak.habit_id == habit_id, Streak.user_id == user_id)
    ).first()
    return row.to_state() if row is not None else streaks.EMPTY_STREAK


def completed_dates(session: Session, habit_id: int, user_id: int) -> List[date]:
    return list(
        session.exec(
            select(HabitLog.date)
            .where(
                HabitLog.habit_id == habit_id,
                HabitLog.user_id == user_id,
                HabitLog.is_completed == True,  # noqa: E712
            )
            .order_by(HabitLog.date.desc())
        ).all()
    )


def rebuild_streak(session: Session, habit_id: int, user_id: int) -> StreakState:
    session.flush()
    return streaks.recalculate(completed_dates(session, habit_id, user_id))


def log_completion(
    session: Session,
    habit_id: int,
    user_id: int,
    day: date,
    is_completed: bool = True,
    completed_count: int = 1,
    notes: Optional[str] = "",
    backfill_policy: Optional[str] = None,
) -> Tuple[HabitLog, StreakState]:
    """Upsert the log for ``day`` and update the habit's streak.

    Raises HabitNotFoundError, ScheduleViolationError, DataCorruptionError
    or TransactionError; nothing is written when any of them is raised.
    """
    backfill_policy = backfill_policy or config.BACKFILL_POLICY

    with unit_of_work(session, "log habit"):
        habit = get_owned_habit(session, habit_id, user_id, active_only=True)

        active_days = decode_active_days(habit.active_days)
        if not is_countable_day(habit.frequency_type, active_days, day):
            logger.warning("Habit %s is not scheduled on %s", habit_id, day)
            raise ScheduleViolationError()

        log = session.exec(
            select(HabitLog).where(HabitLog.habit_id == habit_id, HabitLog.date == day)
        ).first()
        was_completed = log is not None and log.is_completed
        if log is None:
            log = HabitLog(habit_id=habit_id, user_id=user_id, date=day)
        log.completed_count = completed_count
        log.is_completed = is_completed
        log.notes = notes
        if log.id is not None:
            log.updated_at = datetime.utcnow()
        session.add(log)

        row = get_streak_row(session, habit_id, user_id)
        prior = row.to_state()
        if is_completed:
            if streaks.is_backfill(prior, day) and backfill_policy == config.BACKFILL_RECALCULATE:
                state = rebuild_streak(session, habit_id, user_id)
            else:
                state = streaks.advance(prior, day)
        elif was_completed:
            # a completed day was taken back
            state = rebuild_streak(session, habit_id, user_id)
        else:
            state = prior
        row.apply(state)
        session.add(row)
        session.flush()

    session.refresh(log)
    logger.info(
        "Logged habit %s on %s (completed=%s): streak %s/%s",
        habit_id, day, is_completed, state.current_streak, state.longest_streak,
    )
    return log, state


def delete_log(session: Session, log_id: int, user_id: int) -> StreakState:
    """Delete a log and rebuild its habit's streak from the remaining history."""
    with unit_of_work(session, "delete habit log"):
        log = session.exec(
            select(HabitLog).where(HabitLog.id == log_id, HabitLog.user_id == user_id)
        ).first()
        if log is None:
            raise LogNotFoundError()
        habit_id = log.habit_id
        session.delete(log)

        state = rebuild_streak(session, habit_id, user_id)
        row = get_streak_row(session, habit_id, user_id)
        row.apply(state)
        session.add(row)

    logger.info("Deleted log %s of habit %s: streak %s/%s",
                log_id, habit_id, state.current_streak, state.longest_streak)
    return state


def delete_habit(session: Session, habit_id: int, user_id: int):
    """Delete a habit with its streak and logs, in that order."""
    with unit_of_work(session, "delete habit"):
        get_owned_habit(session, habit_id, user_id)
        session.execute(delete(Streak).where(Streak.habit_id == habit_id))
        session.execute(delete(HabitLog).where(HabitLog.habit_id == habit_id))
        session.execute(delete(Habit).where(Habit.id == habit_id))
    logger.info("Deleted habit %s", habit_id)

