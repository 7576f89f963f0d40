"""
Referral XP rules: pure functions, no DB access.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from app.engine.streak import apply_multiplier

REGISTRATION = "registration"
PAYMENT = "payment"

REGISTRATION_BASE_XP = 100
PAYMENT_XP = 400

# (minimum registrations today, multiplier), highest first
REGISTRATION_TIERS = [
    (50, 2.0),
    (20, 1.6),
    (5, 1.3),
]


@dataclass(frozen=True)
class ReferralAward:
    success: bool
    xp_awarded: int = 0
    multiplier: float = 1.0
    daily_count: int = 0
    reason: Optional[str] = None
    daily_referrals: dict[str, int] = field(default_factory=dict)
    invited_count: int = 0


def registration_multiplier(daily_count: int) -> float:
    for threshold, multiplier in REGISTRATION_TIERS:
        if daily_count >= threshold:
            return multiplier
    return 1.0


def compute_referral_award(
    event: str,
    daily_referrals: dict[str, int],
    invited_count: int,
    today: date,
    eid_date: date,
) -> ReferralAward:
    """
    Returns the award plus the referrer's counters after it.
    Past ``eid_date`` nothing is awarded and nothing is counted.
    """
    if today > eid_date:
        return ReferralAward(False, reason="expired", daily_referrals=dict(daily_referrals), invited_count=invited_count)

    if event == PAYMENT:
        return ReferralAward(
            True,
            xp_awarded=PAYMENT_XP,
            daily_referrals=dict(daily_referrals),
            invited_count=invited_count,
        )

    if event != REGISTRATION:
        raise ValueError(f"unknown referral event: {event}")

    today_key = today.isoformat()
    counts = dict(daily_referrals)
    counts[today_key] = int(counts.get(today_key, 0)) + 1
    multiplier = registration_multiplier(counts[today_key])
    return ReferralAward(
        True,
        xp_awarded=apply_multiplier(REGISTRATION_BASE_XP, multiplier),
        multiplier=multiplier,
        daily_count=counts[today_key],
        daily_referrals=counts,
        invited_count=invited_count + 1,
    )
