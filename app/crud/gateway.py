import json
import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.crud.user import get_user_by_tg_id
from app.engine.badges import badges_to_unlock
from app.models import User, XpLog

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UserNotFoundError(LookupError):
    def __init__(self, tg_user_id: int):
        super().__init__(f"user {tg_user_id} not found")
        self.tg_user_id = tg_user_id


class ConcurrentUpdateError(RuntimeError):
    def __init__(self, tg_user_id: int, attempts: int):
        super().__init__(f"user {tg_user_id} kept changing underneath us ({attempts} attempts)")
        self.tg_user_id = tg_user_id
        self.attempts = attempts


def loads_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        parsed = json.loads(value)
    except ValueError:
        return default
    return parsed if isinstance(parsed, type(default)) else default


def dumps_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def update_user_atomically(
    db: Session,
    tg_user_id: int,
    mutate: Callable[[User], T],
    max_attempts: Optional[int] = None,
) -> T:
    """
    Load the user, apply ``mutate`` and commit, as one read-modify-write.

    The users table is version-checked: if another request committed a change
    to the same row after our read, the commit raises StaleDataError, we roll
    back and run ``mutate`` again against the freshly loaded row. ``mutate``
    must therefore derive everything it writes from the row it is given.
    """
    attempts = max_attempts or settings.SYNC_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        user = get_user_by_tg_id(db, tg_user_id)
        if not user:
            raise UserNotFoundError(tg_user_id)

        result = mutate(user)
        db.add(user)
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning("Concurrent update of user %s, retrying (%d/%d)", tg_user_id, attempt, attempts)
            continue
        db.refresh(user)
        return result

    raise ConcurrentUpdateError(tg_user_id, attempts)


def add_xp(db: Session, user: User, amount: int, source: str) -> None:
    """Credit XP on a row inside a mutate callback. Non-positive amounts are ignored."""
    if amount <= 0:
        return
    user.xp = (user.xp or 0) + amount
    db.add(XpLog(tg_user_id=user.tg_user_id, source=source, amount=amount))


def unlock_badges(user: User) -> list[str]:
    unlocked = loads_json(user.unlocked_badges_json, [])
    stats = {
        "xp": user.xp,
        "invited_count": user.invited_count,
        "longest_streak": user.longest_streak,
    }
    new_badges = badges_to_unlock(stats, unlocked)
    if new_badges:
        user.unlocked_badges_json = dumps_json(unlocked + new_badges)
        logger.info("User %s unlocked badges %s", user.tg_user_id, new_badges)
    return new_badges
