import logging
from datetime import date, datetime, timezone

from app.engine.badges import badges_to_unlock
from app.engine.daily_summary import CORE_DAILY_TASKS, summarize_day
from app.engine.dates import CampaignCalendar, date_for_day, parse_iso_date, today_in_timezone
from app.engine.ledger import DailyCompletionLedger
from app.engine.xp_table import DEFAULT_TASK_XP, NAME_XP, TASK_XP, base_xp_for


class TestTaskXP:
    def test_known_tasks(self):
        assert base_xp_for("fajr") == 50
        assert base_xp_for("dhuhr") == 50
        assert base_xp_for("fasting") == 100

    def test_all_rewards_positive(self):
        assert all(xp > 0 for xp in TASK_XP.values())
        assert NAME_XP == 100

    def test_unknown_task_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="app.engine.xp_table"):
            assert base_xp_for("juggling") == DEFAULT_TASK_XP
        assert "juggling" in caplog.text


class TestLedger:
    def test_mark_once_per_day(self):
        ledger = DailyCompletionLedger()
        assert ledger.mark_earned("2026-03-01", "fajr") is True
        assert ledger.mark_earned("2026-03-01", "fajr") is False
        assert ledger.has_earned("2026-03-01", "fajr")

    def test_days_are_independent(self):
        ledger = DailyCompletionLedger({"2026-03-01": ["fajr"]})
        assert not ledger.has_earned("2026-03-02", "fajr")
        assert ledger.mark_earned("2026-03-02", "fajr") is True
        assert ledger.to_dict() == {"2026-03-01": ["fajr"], "2026-03-02": ["fajr"]}

    def test_loading_collapses_duplicates(self):
        ledger = DailyCompletionLedger({"2026-03-01": ["fajr", "fajr", "asr"]})
        assert ledger.entry("2026-03-01") == ["fajr", "asr"]


class TestDates:
    def test_day_one_is_the_anchor(self):
        assert date_for_day(date(2026, 2, 19), 1) == date(2026, 2, 19)
        assert date_for_day(date(2026, 2, 19), 11) == date(2026, 3, 1)

    def test_today_follows_the_reference_zone(self):
        late_utc = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)
        assert today_in_timezone("Asia/Almaty", late_utc) == date(2026, 3, 2)

    def test_unknown_zone_falls_back_to_utc(self):
        late_utc = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)
        assert today_in_timezone("Nowhere/Land", late_utc) == date(2026, 3, 1)

    def test_parse_iso_date(self):
        assert parse_iso_date("2026-03-01") == date(2026, 3, 1)
        assert parse_iso_date("yesterday") is None
        assert parse_iso_date(None) is None

    def test_current_day_by_period(self):
        calendar = CampaignCalendar(date(2026, 2, 19), 30, date(2026, 2, 9), 10, date(2026, 3, 20))
        assert calendar.current_day(date(2026, 3, 1)) == ("progress", 11)
        assert calendar.current_day(date(2026, 4, 30)) == ("progress", 30)
        assert calendar.current_day(date(2026, 2, 12)) == ("preparation_progress", 4)
        assert calendar.current_day(date(2026, 1, 1)) == ("preparation_progress", 1)


class TestDailySummary:
    def test_percent_counts_core_tasks_only(self):
        summary = summarize_day({"fajr": True, "dhuhr": True, "asr": "yes", "charity": True})
        assert summary["completed"] == 2
        assert summary["total"] == len(CORE_DAILY_TASKS)
        assert summary["percent"] == 20
        assert summary["tasks"]["charity"] is True

    def test_empty_day(self):
        assert summarize_day({})["percent"] == 0


class TestBadges:
    def test_unlocks_on_goal(self):
        stats = {"xp": 10000, "invited_count": 3, "longest_streak": 2}
        assert badges_to_unlock(stats, []) == ["legend"]

    def test_already_unlocked_not_repeated(self):
        stats = {"xp": 12000, "invited_count": 10, "longest_streak": 7}
        assert badges_to_unlock(stats, ["legend"]) == ["social_butterfly", "week_streak"]

    def test_missing_counters_count_as_zero(self):
        assert badges_to_unlock({}, []) == []
