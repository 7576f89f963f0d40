import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.config import settings
from app.crud.gateway import update_user_atomically
from app.engine.dates import zone_or_utc
from app.models import User

logger = logging.getLogger(__name__)

PROGRESS_REMINDER_HOUR = 20
DEMO_WARNING_WINDOW_HOURS = 24


def _active_users(db: Session, now: datetime) -> list[User]:
    return list(
        db.scalars(
            select(User)
            .where(
                or_(
                    User.payment_status == "paid",
                    and_(User.access_type == "demo", User.demo_expires_at > now),
                )
            )
            .order_by(User.id)
        )
    )


def get_progress_reminder_targets(
    db: Session, now: Optional[datetime] = None, hour: int = PROGRESS_REMINDER_HOUR
) -> list[User]:
    """
    Users with access whose local clock shows ``hour`` and who have not
    marked anything on their local today.

    ``now`` is naive UTC, like every stored timestamp.
    """
    now = now or datetime.utcnow()
    aware = now.replace(tzinfo=timezone.utc)

    targets = []
    for user in _active_users(db, now):
        local = aware.astimezone(zone_or_utc(user.timezone or settings.APP_TIMEZONE))
        if local.hour != hour:
            continue
        if user.last_active_date == local.date():
            continue
        targets.append(user)
    return targets


def get_expiring_demo_users(
    db: Session, now: Optional[datetime] = None, within_hours: int = DEMO_WARNING_WINDOW_HOURS
) -> list[User]:
    """Unpaid demo users whose trial ends within the window and who were not warned yet."""
    now = now or datetime.utcnow()
    return list(
        db.scalars(
            select(User)
            .where(
                User.access_type == "demo",
                User.payment_status != "paid",
                User.demo_expires_at > now,
                User.demo_expires_at <= now + timedelta(hours=within_hours),
                User.demo_expiry_notified_at.is_(None),
            )
            .order_by(User.demo_expires_at)
        )
    )


def mark_demo_expiry_notified(db: Session, tg_user_id: int, now: Optional[datetime] = None) -> User:
    stamp = now or datetime.utcnow()

    def mutate(user: User) -> User:
        user.demo_expiry_notified_at = stamp
        return user

    return update_user_atomically(db, tg_user_id, mutate)
