import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.crud.gateway import update_user_atomically
from app.crud.referrals import reward_referral_payment
from app.engine.dates import CampaignCalendar
from app.engine.referral_xp import ReferralAward
from app.models import User

logger = logging.getLogger(__name__)


def submit_receipt(db: Session, tg_user_id: int, receipt_file_id: str) -> User:
    def mutate(user: User) -> User:
        user.payment_status = "pending"
        user.receipt_file_id = receipt_file_id
        user.paid_amount = settings.PRICE_DISCOUNT if user.has_discount else settings.PRICE_FULL
        user.onboarding_step = "review"
        return user

    user = update_user_atomically(db, tg_user_id, mutate)
    logger.info("Receipt submitted by %s, awaiting review", tg_user_id)
    return user


def approve_payment(
    db: Session, tg_user_id: int, today: date, calendar: CampaignCalendar
) -> tuple[User, Optional[ReferralAward]]:
    """Grant full access, then credit the referrer (if any) for the payment once."""
    def mutate(user: User) -> User:
        user.payment_status = "paid"
        user.access_type = "full"
        user.payment_date = datetime.utcnow()
        user.onboarding_completed = True
        user.onboarding_step = "done"
        return user

    user = update_user_atomically(db, tg_user_id, mutate)
    logger.info("Payment approved for %s", tg_user_id)

    award = reward_referral_payment(db, tg_user_id, today, calendar)
    if award is not None and not award.success:
        logger.info("Referral payment bonus for %s not awarded: %s", tg_user_id, award.reason)
    return user, award


def reject_payment(db: Session, tg_user_id: int, now: Optional[datetime] = None) -> User:
    expires_at = (now or datetime.utcnow()) + timedelta(hours=settings.DEMO_HOURS)

    def mutate(user: User) -> User:
        user.payment_status = "rejected"
        user.access_type = "demo"
        user.demo_expires_at = expires_at
        user.demo_expiry_notified_at = None
        user.onboarding_step = "payment"
        return user

    user = update_user_atomically(db, tg_user_id, mutate)
    logger.info("Payment rejected for %s, demo until %s", tg_user_id, expires_at.isoformat())
    return user


def activate_demo(db: Session, tg_user_id: int, now: Optional[datetime] = None) -> Optional[User]:
    """Grant the one-off free trial. Returns None if it was already used or the user has paid."""
    expires_at = (now or datetime.utcnow()) + timedelta(hours=settings.DEMO_HOURS)

    def mutate(user: User) -> Optional[User]:
        if user.payment_status == "paid" or user.demo_expires_at is not None:
            return None
        user.access_type = "demo"
        user.demo_expires_at = expires_at
        user.demo_expiry_notified_at = None
        return user

    return update_user_atomically(db, tg_user_id, mutate)


def get_pending_payments(db: Session) -> list[User]:
    return list(db.scalars(select(User).where(User.payment_status == "pending").order_by(User.updated_at)))


def get_user_access(user: Optional[User], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()

    if user is not None and user.tg_user_id in settings.admin_ids:
        return {"has_access": True, "payment_status": "paid", "reason": "admin_access"}
    if user is None:
        return {"has_access": False, "payment_status": "unpaid", "reason": "user_not_found"}

    # demo is checked first: a rejected payment still leaves the trial running
    if user.access_type == "demo" and user.demo_expires_at:
        if user.demo_expires_at > now:
            return {"has_access": True, "payment_status": "demo", "demo_expires": user.demo_expires_at.isoformat()}
        return {"has_access": False, "payment_status": "unpaid", "reason": "demo_expired"}

    if user.payment_status == "paid":
        return {"has_access": True, "payment_status": "paid"}
    if user.payment_status == "pending":
        return {"has_access": False, "payment_status": "pending", "reason": "payment_pending"}
    return {"has_access": False, "payment_status": "unpaid", "reason": "not_paid"}
