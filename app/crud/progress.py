import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.crud.gateway import add_xp, dumps_json, loads_json, unlock_badges, update_user_atomically
from app.engine.dates import CampaignCalendar
from app.engine.reconciler import ProgressPayload, ProgressSnapshot, reconcile
from app.engine.streak import update_streak
from app.engine.xp_table import NAME_XP
from app.models import User

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = ("name", "photo_url", "language")


@dataclass
class SyncOutcome:
    xp_added: int
    streak_multiplier: float
    current_streak: int
    longest_streak: int
    xp: int
    newly_completed: list[str] = field(default_factory=list)
    new_names: list[int] = field(default_factory=list)
    new_badges: list[str] = field(default_factory=list)


def snapshot_from_user(user: User) -> ProgressSnapshot:
    return ProgressSnapshot(
        progress=loads_json(user.progress_json, {}),
        preparation_progress=loads_json(user.preparation_progress_json, {}),
        basic_progress=loads_json(user.basic_progress_json, {}),
        memorized_names=[int(x) for x in loads_json(user.memorized_names_json, [])],
        earned_tasks=loads_json(user.earned_tasks_json, {}),
        xp=user.xp or 0,
        current_streak=user.current_streak or 0,
    )


def _apply_profile_fields(user: User, profile: dict[str, Any]) -> None:
    for column in PROFILE_COLUMNS:
        if profile.get(column) is not None:
            setattr(user, column, profile[column])
    extras = profile.get("extras")
    if extras:
        merged = loads_json(user.extras_json, {})
        merged.update(extras)
        user.extras_json = dumps_json(merged)


def sync_progress(
    db: Session,
    tg_user_id: int,
    payload: ProgressPayload,
    today: date,
    calendar: CampaignCalendar,
    profile: Optional[dict[str, Any]] = None,
) -> SyncOutcome:
    def mutate(user: User) -> SyncOutcome:
        result = reconcile(snapshot_from_user(user), payload, today, calendar)
        merged = result.snapshot

        if payload.progress is not None:
            user.progress_json = dumps_json(merged.progress)
        if payload.preparation_progress is not None:
            user.preparation_progress_json = dumps_json(merged.preparation_progress)
        if payload.basic_progress is not None:
            user.basic_progress_json = dumps_json(merged.basic_progress)
        if payload.memorized_names is not None:
            user.memorized_names_json = dumps_json(merged.memorized_names)
        user.earned_tasks_json = dumps_json(merged.earned_tasks)

        earned = result.xp_delta > 0
        names_xp = NAME_XP * len(result.new_names)
        add_xp(db, user, result.xp_delta - names_xp, "daily_tasks")
        add_xp(db, user, names_xp, "memorized_names")

        streak = update_streak(
            user.current_streak or 0,
            user.longest_streak or 0,
            user.last_active_date,
            today,
            earned,
        )
        user.current_streak = streak.current_streak
        user.longest_streak = streak.longest_streak
        user.last_active_date = streak.last_active_date

        _apply_profile_fields(user, profile or {})
        new_badges = unlock_badges(user)

        if earned:
            logger.info(
                "Sync for %s: +%d XP (x%.1f), tasks=%s names=%s, streak=%d",
                tg_user_id, result.xp_delta, result.multiplier,
                result.newly_completed, result.new_names, streak.current_streak,
            )

        return SyncOutcome(
            xp_added=result.xp_delta,
            streak_multiplier=result.multiplier if result.newly_completed else 1.0,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            xp=user.xp,
            newly_completed=list(result.newly_completed),
            new_names=list(result.new_names),
            new_badges=new_badges,
        )

    return update_user_atomically(db, tg_user_id, mutate)
