import random
from datetime import date, timedelta

import pytest

from habit_tracker.streaks import (
    EMPTY_STREAK,
    StreakState,
    advance,
    effective_streak,
    is_backfill,
    recalculate,
)


def d(day):
    return date(2024, 1, day)


def replay(days):
    state = EMPTY_STREAK
    for day in days:
        state = advance(state, day)
    return state


class TestAdvance:
    def test_first_completion_starts_streak(self):
        assert advance(EMPTY_STREAK, d(5)) == StreakState(1, 1, d(5))

    def test_next_day_extends(self):
        state = StreakState(current_streak=3, longest_streak=3, last_completed_date=d(3))
        assert advance(state, d(4)) == StreakState(4, 4, d(4))

    def test_same_day_is_idempotent(self):
        state = advance(advance(EMPTY_STREAK, d(1)), d(2))
        assert advance(state, d(2)) == state

    @pytest.mark.parametrize("gap", [2, 3, 30])
    def test_gap_resets_to_one(self, gap):
        state = StreakState(current_streak=10, longest_streak=12, last_completed_date=d(1))
        new_state = advance(state, d(1) + timedelta(days=gap))
        assert new_state.current_streak == 1
        assert new_state.longest_streak == 12

    def test_longest_follows_current(self):
        state = StreakState(current_streak=2, longest_streak=2, last_completed_date=d(2))
        assert advance(state, d(3)).longest_streak == 3

    def test_backfill_holds_counts_and_moves_last_date(self):
        state = StreakState(current_streak=4, longest_streak=6, last_completed_date=d(10))
        assert is_backfill(state, d(7))
        assert advance(state, d(7)) == StreakState(4, 6, d(7))

    def test_day_after_backfill_extends(self):
        state = advance(advance(EMPTY_STREAK, d(5)), d(3))
        assert state == StreakState(1, 1, d(3))
        assert advance(state, d(4)) == StreakState(2, 2, d(4))

    def test_not_backfill_without_history(self):
        assert not is_backfill(EMPTY_STREAK, d(1))
        assert not is_backfill(StreakState(1, 1, d(3)), d(3))


class TestRecalculate:
    def test_empty_history(self):
        assert recalculate([]) == StreakState(0, 0, None)
        assert recalculate([]).is_empty

    def test_run_gap_single_day(self):
        state = recalculate([d(1), d(2), d(3), d(6)])
        assert state == StreakState(current_streak=1, longest_streak=3, last_completed_date=d(6))

    def test_current_run_is_anchored_at_latest_date(self):
        state = recalculate([d(1), d(4), d(5), d(6), d(7)])
        assert state == StreakState(4, 4, d(7))

    def test_longest_run_in_the_middle(self):
        state = recalculate([d(1), d(5), d(6), d(7), d(8), d(10), d(11)])
        assert state.current_streak == 2
        assert state.longest_streak == 4

    def test_order_and_duplicates_do_not_matter(self):
        assert recalculate([d(3), d(1), d(2), d(2)]) == StreakState(3, 3, d(3))

    def test_deleting_last_day_shrinks_streak(self):
        assert recalculate([d(1), d(2), d(3)]) == StreakState(3, 3, d(3))
        assert recalculate([d(1), d(2)]) == StreakState(2, 2, d(2))

    def test_single_day(self):
        assert recalculate([d(9)]) == StreakState(1, 1, d(9))


@pytest.mark.parametrize("seed", range(30))
def test_incremental_matches_full_recalculation(seed):
    rng = random.Random(seed)
    logged = set()
    state = EMPTY_STREAK
    for _ in range(50):
        if logged and rng.random() < 0.25:
            logged.discard(rng.choice(sorted(logged)))
            state = recalculate(logged)
        else:
            base = max(logged) if logged else d(1)
            day = base + timedelta(days=rng.choice([0, 1, 1, 1, 2, 3, 7]))
            logged.add(day)
            state = advance(state, day)
        assert state == recalculate(logged)
        assert state.longest_streak >= state.current_streak >= 0


def test_replay_of_sorted_history_matches_recalculate():
    days = [d(1), d(2), d(3), d(6), d(7), d(20)]
    assert replay(days) == recalculate(days)


class TestEffectiveStreak:
    def test_no_completions(self):
        assert effective_streak(EMPTY_STREAK, d(5)) == 0

    @pytest.mark.parametrize("today", [d(10), d(11)])
    def test_recent_completion_keeps_streak(self, today):
        assert effective_streak(StreakState(5, 5, d(10)), today) == 5

    def test_stale_streak_reads_zero(self):
        assert effective_streak(StreakState(5, 5, d(10)), d(12)) == 0
