from datetime import date
from typing import Any, Callable, Dict, TypeVar

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_calendar, get_db, get_today
from app.crud import (
    CircleAccessError,
    CircleError,
    CircleNotFoundError,
    UserNotFoundError,
    accept_invite,
    create_circle,
    decline_invite,
    delete_circle,
    get_circle_details,
    get_user_circles,
    invite_to_circle,
    join_by_code,
    leave_circle,
    remove_member,
)
from app.engine.dates import CampaignCalendar
from app.schemas import CircleCreateIn, CircleInviteIn, CircleJoinIn, CircleMemberIn

router = APIRouter(prefix="/v1/app/circles", tags=["circles"])

T = TypeVar("T")


def _run(action: Callable[..., T], *args: Any) -> T:
    try:
        return action(*args)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except CircleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CircleAccessError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except CircleError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("")
def circles_create(body: CircleCreateIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    circle = _run(create_circle, db, body.tg_user_id, body.name, body.description)
    return {"success": True, "circle": circle}


@router.get("/user/{tg_user_id}")
def circles_of_user(tg_user_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    items = get_user_circles(db, tg_user_id)
    return {"count": len(items), "items": items}


@router.post("/join")
def circles_join(body: CircleJoinIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    circle = _run(join_by_code, db, body.invite_code, body.tg_user_id)
    return {"success": True, "circle": circle}


@router.get("/{circle_id}")
def circles_details(
    circle_id: str,
    tg_user_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    calendar: CampaignCalendar = Depends(get_calendar),
) -> Dict[str, Any]:
    return _run(get_circle_details, db, circle_id, tg_user_id, today, calendar)


@router.post("/{circle_id}/invite")
def circles_invite(circle_id: str, body: CircleInviteIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    # the bot process delivers the Telegram notification; the API only records the invite
    invite = _run(invite_to_circle, db, circle_id, body.tg_user_id, body.username)
    return {"success": True, **invite}


@router.post("/{circle_id}/accept")
def circles_accept(circle_id: str, body: CircleMemberIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _run(accept_invite, db, circle_id, body.tg_user_id)
    return {"success": True}


@router.post("/{circle_id}/decline")
def circles_decline(circle_id: str, body: CircleMemberIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _run(decline_invite, db, circle_id, body.tg_user_id)
    return {"success": True}


@router.post("/{circle_id}/leave")
def circles_leave(circle_id: str, body: CircleMemberIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _run(leave_circle, db, circle_id, body.tg_user_id)
    return {"success": True}


@router.post("/{circle_id}/members/{member_tg_user_id}/remove")
def circles_remove_member(
    circle_id: str, member_tg_user_id: int, body: CircleMemberIn, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    _run(remove_member, db, circle_id, body.tg_user_id, member_tg_user_id)
    return {"success": True}


@router.delete("/{circle_id}")
def circles_delete(circle_id: str, tg_user_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _run(delete_circle, db, circle_id, tg_user_id)
    return {"success": True}
