from datetime import date, timedelta

from app.engine.streak import MAX_STREAK_MULTIPLIER, apply_multiplier, streak_multiplier, update_streak

TODAY = date(2026, 3, 1)
YESTERDAY = TODAY - timedelta(days=1)
TWO_DAYS_AGO = TODAY - timedelta(days=2)


class TestStreakMultiplier:
    def test_no_streak_is_neutral(self):
        assert streak_multiplier(0) == 1.0

    def test_five_day_streak(self):
        assert streak_multiplier(5) == 1.5

    def test_capped_at_three(self):
        assert streak_multiplier(20) == MAX_STREAK_MULTIPLIER
        assert streak_multiplier(45) == MAX_STREAK_MULTIPLIER

    def test_negative_streak_treated_as_zero(self):
        assert streak_multiplier(-3) == 1.0


class TestApplyMultiplier:
    def test_floors_result(self):
        assert apply_multiplier(25, 1.1) == 27

    def test_exact_products_are_not_rounded_down(self):
        assert apply_multiplier(50, 1.5) == 75
        assert apply_multiplier(100, 1.3) == 130
        assert apply_multiplier(50, 1.1) == 55


class TestUpdateStreak:
    def test_first_active_day_starts_at_one(self):
        s = update_streak(0, 0, None, TODAY, True)
        assert (s.current_streak, s.longest_streak, s.last_active_date) == (1, 1, TODAY)

    def test_consecutive_day_increments(self):
        s = update_streak(5, 7, YESTERDAY, TODAY, True)
        assert s.current_streak == 6
        assert s.longest_streak == 7
        assert s.last_active_date == TODAY

    def test_longest_follows_current(self):
        s = update_streak(7, 7, YESTERDAY, TODAY, True)
        assert s.longest_streak == 8

    def test_gap_resets_to_one(self):
        s = update_streak(10, 10, TWO_DAYS_AGO, TODAY, True)
        assert s.current_streak == 1
        assert s.longest_streak == 10

    def test_second_sync_same_day_is_unchanged(self):
        s = update_streak(4, 6, TODAY, TODAY, True)
        assert (s.current_streak, s.longest_streak, s.last_active_date) == (4, 6, TODAY)

    def test_nothing_earned_changes_nothing(self):
        s = update_streak(4, 6, TWO_DAYS_AGO, TODAY, False)
        assert (s.current_streak, s.longest_streak, s.last_active_date) == (4, 6, TWO_DAYS_AGO)
