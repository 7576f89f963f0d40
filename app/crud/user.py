import secrets
import string
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import User

PROMO_ALPHABET = string.ascii_uppercase + string.digits


def generate_promo_code(length: int = 6) -> str:
    return "".join(secrets.choice(PROMO_ALPHABET) for _ in range(length))


def get_user_by_tg_id(db: Session, tg_user_id: int) -> Optional[User]:
    return db.scalar(select(User).where(User.tg_user_id == tg_user_id))


def get_user_by_promo_code(db: Session, promo_code: str) -> Optional[User]:
    code = (promo_code or "").strip().upper()
    if not code:
        return None
    return db.scalar(select(User).where(User.promo_code == code))


def get_or_create_user(db: Session, tg_user_id: int, username: Optional[str], first_name: Optional[str]) -> User:
    user = get_user_by_tg_id(db, tg_user_id)
    if user:
        return user

    code = generate_promo_code()
    while get_user_by_promo_code(db, code):
        code = generate_promo_code()

    user = User(
        tg_user_id=tg_user_id,
        username=username,
        first_name=first_name,
        promo_code=code,
        xp=0,
        current_streak=0,
        longest_streak=0,
        invited_count=0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # the same user was created by a parallel request
        db.rollback()
        existing = get_user_by_tg_id(db, tg_user_id)
        if existing is None:
            raise
        return existing
    db.refresh(user)
    return user
