from app.models.base import Base
from app.models.circle import Circle, CircleMember
from app.models.referral import Referral
from app.models.used_promo_code import UsedPromoCode
from app.models.user import User
from app.models.xp_log import XpLog

__all__ = [
    "Base",
    "User",
    "Referral",
    "UsedPromoCode",
    "XpLog",
    "Circle",
    "CircleMember",
]
