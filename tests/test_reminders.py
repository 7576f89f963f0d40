from datetime import date, datetime, timedelta

from app.crud import (
    get_expiring_demo_users,
    get_progress_reminder_targets,
    get_user_by_tg_id,
    mark_demo_expiry_notified,
    reject_payment,
)

# 15:00 UTC is 20:00 in Tashkent (UTC+5, no DST)
EVENING = datetime(2026, 3, 1, 15, 0)
TASHKENT = "Asia/Tashkent"


def _ids(users):
    return sorted(u.tg_user_id for u in users)


class TestProgressReminderTargets:
    def test_picks_idle_users_at_their_local_evening(self, db, make_user):
        make_user(8001, payment_status="paid", timezone=TASHKENT)
        make_user(8002, payment_status="paid", timezone=TASHKENT, last_active_date=date(2026, 2, 28))
        make_user(8003, payment_status="paid", timezone=TASHKENT, last_active_date=date(2026, 3, 1))
        make_user(8004, payment_status="paid", timezone="UTC")

        assert _ids(get_progress_reminder_targets(db, EVENING)) == [8001, 8002]

    def test_only_users_with_access(self, db, make_user):
        make_user(8011, timezone=TASHKENT)
        make_user(8012, timezone=TASHKENT, access_type="demo", demo_expires_at=EVENING + timedelta(hours=3))
        make_user(8013, timezone=TASHKENT, access_type="demo", demo_expires_at=EVENING - timedelta(hours=3))

        assert _ids(get_progress_reminder_targets(db, EVENING)) == [8012]

    def test_other_hours_are_quiet(self, db, make_user):
        make_user(8021, payment_status="paid", timezone=TASHKENT)
        assert get_progress_reminder_targets(db, EVENING + timedelta(hours=1)) == []


class TestDemoExpiry:
    NOW = datetime(2026, 3, 1, 5, 0)

    def test_window_and_paid_users(self, db, make_user):
        make_user(8101, access_type="demo", demo_expires_at=self.NOW + timedelta(hours=10))
        make_user(8102, access_type="demo", demo_expires_at=self.NOW + timedelta(hours=30))
        make_user(8103, access_type="demo", demo_expires_at=self.NOW - timedelta(hours=1))
        make_user(8104, access_type="demo", payment_status="paid", demo_expires_at=self.NOW + timedelta(hours=2))

        assert _ids(get_expiring_demo_users(db, self.NOW)) == [8101]

    def test_warned_once(self, db, make_user):
        make_user(8111, access_type="demo", demo_expires_at=self.NOW + timedelta(hours=5))
        mark_demo_expiry_notified(db, 8111, self.NOW)
        assert get_expiring_demo_users(db, self.NOW) == []

    def test_new_demo_after_rejection_is_warned_again(self, db, make_user):
        make_user(8121, access_type="demo", demo_expires_at=self.NOW + timedelta(hours=5))
        mark_demo_expiry_notified(db, 8121, self.NOW)

        reject_payment(db, 8121, now=self.NOW)
        db.expire_all()
        assert get_user_by_tg_id(db, 8121).demo_expiry_notified_at is None
        assert _ids(get_expiring_demo_users(db, self.NOW)) == [8121]
