from typing import Optional

from sqlalchemy.orm import Session

from app.crud.gateway import update_user_atomically
from app.models import User

# phone -> location -> promo [-> promo_code] -> payment -> review -> done
STEPS = ("phone", "location", "promo", "promo_code", "payment", "review", "done")


def set_onboarding_step(db: Session, tg_user_id: int, step: str) -> User:
    if step not in STEPS:
        raise ValueError(f"unknown onboarding step: {step}")

    def mutate(user: User) -> User:
        user.onboarding_step = step
        return user

    return update_user_atomically(db, tg_user_id, mutate)


def save_phone(db: Session, tg_user_id: int, phone_number: str) -> User:
    def mutate(user: User) -> User:
        user.phone_number = phone_number
        user.onboarding_step = "location"
        return user

    return update_user_atomically(db, tg_user_id, mutate)


def save_location(
    db: Session, tg_user_id: int, latitude: float, longitude: float, timezone: Optional[str] = None
) -> User:
    def mutate(user: User) -> User:
        user.latitude = latitude
        user.longitude = longitude
        if timezone:
            user.timezone = timezone
        user.onboarding_step = "promo"
        return user

    return update_user_atomically(db, tg_user_id, mutate)
