import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.gateway import (
    UserNotFoundError,
    add_xp,
    dumps_json,
    loads_json,
    unlock_badges,
    update_user_atomically,
)
from app.crud.user import get_user_by_promo_code
from app.engine.dates import CampaignCalendar
from app.engine.referral_xp import PAYMENT, REGISTRATION, ReferralAward, compute_referral_award
from app.models import Referral, UsedPromoCode, User

logger = logging.getLogger(__name__)

WELCOME_XP = 100


def create_referral(db: Session, referrer_tg_user_id: int, invited_tg_user_id: int) -> bool:
    if referrer_tg_user_id == invited_tg_user_id:
        return False

    existing = db.scalar(select(Referral).where(Referral.invited_tg_user_id == invited_tg_user_id))
    if existing:
        return False

    db.add(
        Referral(
            referrer_tg_user_id=referrer_tg_user_id,
            invited_tg_user_id=invited_tg_user_id,
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def get_referral(db: Session, invited_tg_user_id: int) -> Optional[Referral]:
    return db.scalar(select(Referral).where(Referral.invited_tg_user_id == invited_tg_user_id))


def check_promo_code(db: Session, promo_code: str, tg_user_id: int) -> Dict[str, Any]:
    owner = get_user_by_promo_code(db, promo_code)
    if not owner:
        return {"valid": False, "reason": "not_found"}
    if owner.tg_user_id == tg_user_id:
        return {"valid": False, "reason": "own_code"}

    used = db.scalar(select(UsedPromoCode).where(UsedPromoCode.promo_code == owner.promo_code))
    if used:
        return {"valid": False, "reason": "already_used"}
    if owner.payment_status != "paid":
        return {"valid": False, "reason": "owner_not_paid"}
    return {"valid": True, "owner": owner}


def redeem_promo_code(db: Session, promo_code: str, user: User) -> Dict[str, Any]:
    """Apply a discount code: single use per code, links the user to the owner as referrer."""
    check = check_promo_code(db, promo_code, user.tg_user_id)
    if not check["valid"]:
        return check

    owner: User = check["owner"]
    db.add(UsedPromoCode(promo_code=owner.promo_code, used_by_tg_user_id=user.tg_user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return {"valid": False, "reason": "already_used"}

    def mark_discount(u: User) -> None:
        u.has_discount = True

    update_user_atomically(db, user.tg_user_id, mark_discount)
    create_referral(db, owner.tg_user_id, user.tg_user_id)
    logger.info("Promo code %s redeemed by %s", owner.promo_code, user.tg_user_id)
    return check


def award_referral_xp(
    db: Session,
    referrer_tg_user_id: int,
    event: str,
    today: date,
    calendar: CampaignCalendar,
) -> ReferralAward:
    """
    Credit the referrer for one referral event.

    Never raises for a missing referrer or a closed bonus period: the referred
    user's own registration or payment must go through regardless.
    """
    if not calendar.referral_bonus_open(today):
        logger.info("Referral %s bonus for %s skipped: period ended %s", event, referrer_tg_user_id, calendar.eid_date)
        return ReferralAward(False, reason="expired")

    def mutate(referrer: User) -> ReferralAward:
        award = compute_referral_award(
            event,
            loads_json(referrer.daily_referrals_json, {}),
            referrer.invited_count or 0,
            today,
            calendar.eid_date,
        )
        if not award.success:
            return award
        referrer.daily_referrals_json = dumps_json(award.daily_referrals)
        referrer.invited_count = award.invited_count
        add_xp(db, referrer, award.xp_awarded, f"referral_{event}")
        unlock_badges(referrer)
        return award

    try:
        award = update_user_atomically(db, referrer_tg_user_id, mutate)
    except UserNotFoundError:
        logger.warning("Referral %s bonus skipped: referrer %s not found", event, referrer_tg_user_id)
        return ReferralAward(False, reason="not_found")

    logger.info(
        "Referral %s: +%d XP to %s (x%.1f, %d today)",
        event, award.xp_awarded, referrer_tg_user_id, award.multiplier, award.daily_count,
    )
    return award


def on_referred_user_registered(
    db: Session, referrer_tg_user_id: int, today: date, calendar: CampaignCalendar
) -> ReferralAward:
    return award_referral_xp(db, referrer_tg_user_id, REGISTRATION, today, calendar)


def on_referred_user_payment_approved(
    db: Session, referrer_tg_user_id: int, today: date, calendar: CampaignCalendar
) -> ReferralAward:
    return award_referral_xp(db, referrer_tg_user_id, PAYMENT, today, calendar)


def _claim(db: Session, referral_id: int, column) -> bool:
    """Stamp a one-time reward column; False if another request already did."""
    result = db.execute(
        update(Referral)
        .where(Referral.id == referral_id)
        .where(column.is_(None))
        .values({column.key: datetime.utcnow()})
    )
    claimed = result.rowcount == 1
    db.commit()
    return claimed


def reward_referral_registration(
    db: Session, invited_tg_user_id: int, today: date, calendar: CampaignCalendar
) -> Optional[ReferralAward]:
    """Fire the registration event for the invited user's referrer, at most once."""
    referral = get_referral(db, invited_tg_user_id)
    if not referral or not _claim(db, referral.id, Referral.registration_rewarded_at):
        return None

    def welcome(u: User) -> None:
        add_xp(db, u, WELCOME_XP, "referral_welcome")

    update_user_atomically(db, invited_tg_user_id, welcome)
    return on_referred_user_registered(db, referral.referrer_tg_user_id, today, calendar)


def reward_referral_payment(
    db: Session, invited_tg_user_id: int, today: date, calendar: CampaignCalendar
) -> Optional[ReferralAward]:
    """Fire the payment event for the invited user's referrer, at most once."""
    referral = get_referral(db, invited_tg_user_id)
    if not referral or not _claim(db, referral.id, Referral.payment_rewarded_at):
        return None
    return on_referred_user_payment_approved(db, referral.referrer_tg_user_id, today, calendar)
