from typing import Any, Dict

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.crud.gateway import loads_json
from app.models import Referral, User


def _is_active():
    return or_(User.payment_status == "paid", User.access_type == "demo")


def _is_ranked():
    return and_(_is_active(), User.xp > 0)


def _row(user: User) -> Dict[str, Any]:
    return {
        "tg_user_id": user.tg_user_id,
        "username": user.username,
        "name": user.name or user.first_name,
        "photo_url": user.photo_url,
        "xp": user.xp,
        "current_streak": user.current_streak,
        "unlocked_badges": loads_json(user.unlocked_badges_json, []),
        "invited_count": user.invited_count,
    }


def get_global_leaderboard(db: Session, limit: int = 50) -> list[Dict[str, Any]]:
    users = db.scalars(select(User).where(_is_ranked()).order_by(User.xp.desc(), User.id).limit(limit))
    return [{"rank": i, **_row(u)} for i, u in enumerate(users, start=1)]


def get_friends_leaderboard(db: Session, tg_user_id: int, limit: int = 20) -> list[Dict[str, Any]]:
    invited_ids = select(Referral.invited_tg_user_id).where(Referral.referrer_tg_user_id == tg_user_id)
    users = db.scalars(
        select(User)
        .where(User.tg_user_id.in_(invited_ids))
        .where(_is_active())
        .order_by(User.xp.desc(), User.id)
        .limit(limit)
    )
    return [_row(u) for u in users]


def get_user_rank(db: Session, user: User) -> Dict[str, Any]:
    ahead = db.scalar(select(func.count()).select_from(User).where(_is_ranked()).where(User.xp > user.xp)) or 0
    total = db.scalar(select(func.count()).select_from(User).where(_is_ranked())) or 0
    return {"rank": ahead + 1, "total_users": total, "user_xp": user.xp}
