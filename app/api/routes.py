from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_calendar, get_db, get_today
from app.crud import (
    ConcurrentUpdateError,
    UserNotFoundError,
    get_friends_leaderboard,
    get_global_leaderboard,
    get_or_create_user,
    get_user_access,
    get_user_by_tg_id,
    get_user_rank,
    sync_progress,
)
from app.crud.gateway import loads_json
from app.engine.dates import CampaignCalendar
from app.models import User
from app.schemas import ProgressSyncIn, ProgressSyncOut, UserBootstrapIn, UserFullOut

router = APIRouter()


def _get_user_or_404(db: Session, tg_user_id: int) -> User:
    user = get_user_by_tg_id(db, tg_user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _full_data(user: User) -> Dict[str, Any]:
    return {
        "tg_user_id": user.tg_user_id,
        "username": user.username,
        "name": user.name,
        "photo_url": user.photo_url,
        "language": user.language or "kk",
        "promo_code": user.promo_code,
        "invited_count": user.invited_count or 0,
        "payment_status": user.payment_status,
        "xp": user.xp or 0,
        "current_streak": user.current_streak or 0,
        "longest_streak": user.longest_streak or 0,
        "last_active_date": user.last_active_date.isoformat() if user.last_active_date else "",
        "progress": loads_json(user.progress_json, {}),
        "preparation_progress": loads_json(user.preparation_progress_json, {}),
        "basic_progress": loads_json(user.basic_progress_json, {}),
        "memorized_names": loads_json(user.memorized_names_json, []),
        "earned_tasks": loads_json(user.earned_tasks_json, {}),
        "unlocked_badges": loads_json(user.unlocked_badges_json, []),
        "extras": loads_json(user.extras_json, {}),
    }


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/v1/app/bootstrap", response_model=UserFullOut)
def app_bootstrap(body: UserBootstrapIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    user = get_or_create_user(db, body.tg_user_id, body.username, body.first_name)
    return _full_data(user)


@router.post("/v1/app/progress/sync", response_model=ProgressSyncOut)
def app_progress_sync(
    body: ProgressSyncIn,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    calendar: CampaignCalendar = Depends(get_calendar),
) -> Dict[str, Any]:
    try:
        outcome = sync_progress(db, body.tg_user_id, body.to_payload(), today, calendar, body.profile_fields())
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except ConcurrentUpdateError:
        raise HTTPException(status_code=409, detail="Progress is being updated from another device, retry")

    return {
        "success": True,
        "xp_added": outcome.xp_added,
        "streak_multiplier": outcome.streak_multiplier,
        "current_streak": outcome.current_streak,
        "longest_streak": outcome.longest_streak,
        "xp": outcome.xp,
        "newly_completed": outcome.newly_completed,
        "new_badges": outcome.new_badges,
    }


@router.get("/v1/app/user/{tg_user_id}", response_model=UserFullOut)
def app_user(tg_user_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return _full_data(_get_user_or_404(db, tg_user_id))


@router.get("/v1/app/access/{tg_user_id}")
def app_access(tg_user_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return get_user_access(get_user_by_tg_id(db, tg_user_id))


@router.get("/v1/app/leaderboard")
def app_leaderboard(limit: int = 50, db: Session = Depends(get_db)) -> Dict[str, Any]:
    limit = max(1, min(limit, 100))
    items = get_global_leaderboard(db, limit)
    return {"count": len(items), "items": items}


@router.get("/v1/app/leaderboard/friends/{tg_user_id}")
def app_friends_leaderboard(tg_user_id: int, limit: int = 20, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _get_user_or_404(db, tg_user_id)
    items = get_friends_leaderboard(db, tg_user_id, max(1, min(limit, 100)))
    return {"count": len(items), "items": items}


@router.get("/v1/app/rank/{tg_user_id}")
def app_rank(tg_user_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return get_user_rank(db, _get_user_or_404(db, tg_user_id))
