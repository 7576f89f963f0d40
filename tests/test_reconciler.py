from datetime import date

from app.engine.reconciler import ProgressPayload, ProgressSnapshot, reconcile

from conftest import CALENDAR, TODAY

DAY_11 = 11  # 2026-03-01


def _credited_fajr(**overrides) -> ProgressSnapshot:
    fields = dict(
        progress={"11": {"fajr": True}},
        earned_tasks={"2026-03-01": ["fajr"]},
        xp=50,
    )
    fields.update(overrides)
    return ProgressSnapshot(**fields)


class TestReconcileScoring:
    def test_only_new_task_is_paid(self):
        result = reconcile(
            _credited_fajr(), ProgressPayload(progress={DAY_11: {"fajr": True, "dhuhr": True}}), TODAY, CALENDAR
        )
        assert result.xp_delta == 50
        assert result.newly_completed == ["dhuhr"]
        assert result.snapshot.earned_tasks["2026-03-01"] == ["fajr", "dhuhr"]
        assert result.snapshot.xp == 100

    def test_streak_scales_award(self):
        result = reconcile(
            _credited_fajr(current_streak=5),
            ProgressPayload(progress={DAY_11: {"fajr": True, "dhuhr": True}}),
            TODAY,
            CALENDAR,
        )
        assert result.multiplier == 1.5
        assert result.xp_delta == 75
        assert result.snapshot.xp == 125

    def test_clearing_a_flag_does_not_claw_back(self):
        snapshot = _credited_fajr()
        result = reconcile(snapshot, ProgressPayload(progress={DAY_11: {"fajr": False}}), TODAY, CALENDAR)
        assert result.xp_delta == 0
        assert result.snapshot.xp == 50
        assert result.snapshot.earned_tasks == snapshot.earned_tasks
        assert result.snapshot.progress["11"] == {"fajr": False}

    def test_new_name_is_flat_regardless_of_streak(self):
        snapshot = ProgressSnapshot(memorized_names=[1, 2], current_streak=12, xp=300)
        result = reconcile(snapshot, ProgressPayload(memorized_names=[1, 2, 3]), TODAY, CALENDAR)
        assert result.xp_delta == 100
        assert result.new_names == [3]
        assert result.snapshot.memorized_names == [1, 2, 3]

    def test_dropped_names_are_kept(self):
        snapshot = ProgressSnapshot(memorized_names=[1, 2, 3])
        result = reconcile(snapshot, ProgressPayload(memorized_names=[1, 4]), TODAY, CALENDAR)
        assert result.xp_delta == 100
        assert result.snapshot.memorized_names == [1, 2, 3, 4]

    def test_unknown_task_gets_default(self):
        result = reconcile(ProgressSnapshot(), ProgressPayload(progress={DAY_11: {"mystery": True}}), TODAY, CALENDAR)
        assert result.xp_delta == 10

    def test_non_boolean_values_are_stored_but_not_scored(self):
        result = reconcile(
            ProgressSnapshot(), ProgressPayload(progress={DAY_11: {"quran": "3 pages", "note": "ok"}}), TODAY, CALENDAR
        )
        assert result.xp_delta == 0
        assert result.snapshot.progress["11"] == {"quran": "3 pages", "note": "ok"}


class TestReconcileIdempotence:
    def test_same_payload_twice_pays_once(self):
        payload = ProgressPayload(progress={DAY_11: {"fajr": True, "fasting": True}})
        first = reconcile(ProgressSnapshot(), payload, TODAY, CALENDAR)
        second = reconcile(first.snapshot, payload, TODAY, CALENDAR)
        assert first.xp_delta == 150
        assert second.xp_delta == 0
        assert second.snapshot.xp == 150

    def test_toggle_off_and_on_pays_nothing(self):
        off = reconcile(_credited_fajr(), ProgressPayload(progress={DAY_11: {"fajr": False}}), TODAY, CALENDAR)
        on = reconcile(off.snapshot, ProgressPayload(progress={DAY_11: {"fajr": True}}), TODAY, CALENDAR)
        assert on.xp_delta == 0
        assert on.snapshot.earned_tasks["2026-03-01"] == ["fajr"]

    def test_task_credited_once_across_namespaces(self):
        payload = ProgressPayload(
            progress={DAY_11: {"fajr": True}},
            basic_progress={date(2026, 3, 1): {"fajr": True}},
        )
        result = reconcile(ProgressSnapshot(), payload, TODAY, CALENDAR)
        assert result.xp_delta == 50
        assert result.newly_completed == ["fajr"]


class TestReconcileDates:
    def test_other_days_are_stored_not_scored(self):
        payload = ProgressPayload(progress={10: {"fajr": True}, 12: {"isha": True}})
        result = reconcile(ProgressSnapshot(), payload, TODAY, CALENDAR)
        assert result.xp_delta == 0
        assert result.snapshot.progress == {"10": {"fajr": True}, "12": {"isha": True}}
        assert result.snapshot.earned_tasks == {}

    def test_preparation_days_count_from_their_own_start(self):
        # 2026-02-12 is preparation day 4
        payload = ProgressPayload(preparation_progress={4: {"quran": True}})
        result = reconcile(ProgressSnapshot(), payload, date(2026, 2, 12), CALENDAR)
        assert result.xp_delta == 40
        assert result.snapshot.earned_tasks == {"2026-02-12": ["quran"]}

    def test_basic_progress_keyed_by_date(self):
        payload = ProgressPayload(basic_progress={date(2026, 3, 1): {"charity": True}})
        result = reconcile(ProgressSnapshot(), payload, TODAY, CALENDAR)
        assert result.xp_delta == 30
        assert result.snapshot.basic_progress == {"2026-03-01": {"charity": True}}


class TestReconcilePartialSync:
    def test_unsent_namespaces_untouched(self):
        snapshot = _credited_fajr(preparation_progress={"3": {"quran": True}})
        result = reconcile(snapshot, ProgressPayload(memorized_names=[7]), TODAY, CALENDAR)
        assert result.snapshot.progress == snapshot.progress
        assert result.snapshot.preparation_progress == snapshot.preparation_progress

    def test_sent_days_overwrite_only_themselves(self):
        snapshot = ProgressSnapshot(progress={"9": {"fajr": True}, "11": {"asr": True}})
        result = reconcile(snapshot, ProgressPayload(progress={DAY_11: {"isha": True}}), TODAY, CALENDAR)
        assert result.snapshot.progress == {"9": {"fajr": True}, "11": {"isha": True}}

    def test_input_snapshot_is_not_mutated(self):
        snapshot = _credited_fajr()
        reconcile(snapshot, ProgressPayload(progress={DAY_11: {"dhuhr": True}}), TODAY, CALENDAR)
        assert snapshot.earned_tasks == {"2026-03-01": ["fajr"]}
        assert snapshot.progress == {"11": {"fajr": True}}
