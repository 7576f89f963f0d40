import logging
import secrets
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.gateway import UserNotFoundError, loads_json
from app.crud.user import PROMO_ALPHABET, generate_promo_code, get_user_by_tg_id
from app.engine.daily_summary import summarize_day
from app.engine.dates import CampaignCalendar
from app.models import Circle, CircleMember, User

logger = logging.getLogger(__name__)

VISIBLE_STATUSES = ("active", "pending")


class CircleError(ValueError):
    """A circle request that breaks a membership rule."""


class CircleNotFoundError(LookupError):
    pass


class CircleAccessError(PermissionError):
    pass


def _new_circle_id() -> str:
    return "CRL_" + "".join(secrets.choice(PROMO_ALPHABET) for _ in range(9))


def _get_circle(db: Session, circle_id: str) -> Circle:
    circle = db.scalar(select(Circle).where(Circle.circle_id == circle_id))
    if not circle:
        raise CircleNotFoundError("Circle not found")
    return circle


def _get_member(db: Session, circle: Circle, tg_user_id: int) -> Optional[CircleMember]:
    return db.scalar(
        select(CircleMember).where(CircleMember.circle_pk == circle.id, CircleMember.tg_user_id == tg_user_id)
    )


def _active_count(db: Session, circle: Circle) -> int:
    return db.scalar(
        select(func.count())
        .select_from(CircleMember)
        .where(CircleMember.circle_pk == circle.id, CircleMember.status == "active")
    ) or 0


def _require_owner(circle: Circle, tg_user_id: int, action: str) -> None:
    if circle.owner_tg_user_id != tg_user_id:
        raise CircleAccessError(f"Only the owner can {action}")


def _require_room(db: Session, circle: Circle) -> None:
    if _active_count(db, circle) >= circle.max_members:
        raise CircleError("Circle is full")


def _circle_row(db: Session, circle: Circle) -> Dict[str, Any]:
    return {
        "circle_id": circle.circle_id,
        "name": circle.name,
        "description": circle.description,
        "owner_tg_user_id": circle.owner_tg_user_id,
        "invite_code": circle.invite_code,
        "max_members": circle.max_members,
        "member_count": _active_count(db, circle),
        "created_at": circle.created_at.isoformat() if circle.created_at else None,
    }


def create_circle(db: Session, owner_tg_user_id: int, name: str, description: str = "") -> Dict[str, Any]:
    if not get_user_by_tg_id(db, owner_tg_user_id):
        raise UserNotFoundError(owner_tg_user_id)
    if not (name or "").strip():
        raise CircleError("Circle name is required")

    owned = db.scalar(select(Circle).where(Circle.owner_tg_user_id == owner_tg_user_id))
    if owned:
        raise CircleError("You already have a circle")

    circle_id = _new_circle_id()
    while db.scalar(select(Circle).where(Circle.circle_id == circle_id)):
        circle_id = _new_circle_id()
    invite_code = generate_promo_code()
    while db.scalar(select(Circle).where(Circle.invite_code == invite_code)):
        invite_code = generate_promo_code()

    circle = Circle(
        circle_id=circle_id,
        name=name.strip(),
        description=(description or "").strip(),
        owner_tg_user_id=owner_tg_user_id,
        invite_code=invite_code,
    )
    db.add(circle)
    db.flush()
    db.add(CircleMember(circle_pk=circle.id, tg_user_id=owner_tg_user_id, role="owner", status="active"))
    db.commit()
    db.refresh(circle)
    logger.info("Circle %s (%s) created by %s", circle.circle_id, circle.name, owner_tg_user_id)
    return _circle_row(db, circle)


def get_user_circles(db: Session, tg_user_id: int) -> list[Dict[str, Any]]:
    """Circles the user belongs to or is invited to; left, declined and removed ones are hidden."""
    rows = db.execute(
        select(Circle, CircleMember)
        .join(CircleMember, CircleMember.circle_pk == Circle.id)
        .where(CircleMember.tg_user_id == tg_user_id, CircleMember.status.in_(VISIBLE_STATUSES))
        .order_by(Circle.created_at)
    ).all()
    return [{**_circle_row(db, circle), "my_role": m.role, "my_status": m.status} for circle, m in rows]


def get_circle_details(
    db: Session, circle_id: str, requester_tg_user_id: int, today: date, calendar: CampaignCalendar
) -> Dict[str, Any]:
    """
    Circle card with every active member's XP, streak and today's checklist.

    Pending invitees may look before accepting; anyone else is refused.
    """
    circle = _get_circle(db, circle_id)
    requester = _get_member(db, circle, requester_tg_user_id)
    if not requester or requester.status not in VISIBLE_STATUSES:
        raise CircleAccessError("Access denied")

    namespace, day_no = calendar.current_day(today)
    column = "progress_json" if namespace == "progress" else "preparation_progress_json"

    rows = db.execute(
        select(CircleMember, User)
        .join(User, User.tg_user_id == CircleMember.tg_user_id)
        .where(CircleMember.circle_pk == circle.id, CircleMember.status == "active")
        .order_by(User.xp.desc(), CircleMember.joined_at)
    ).all()

    members = []
    for member, user in rows:
        days = loads_json(getattr(user, column), {})
        members.append(
            {
                "tg_user_id": user.tg_user_id,
                "username": user.username,
                "name": user.name or user.first_name,
                "photo_url": user.photo_url,
                "role": member.role,
                "xp": user.xp or 0,
                "current_streak": user.current_streak or 0,
                "today_progress": summarize_day(days.get(str(day_no)) or {}),
            }
        )

    pending = db.scalar(
        select(func.count())
        .select_from(CircleMember)
        .where(CircleMember.circle_pk == circle.id, CircleMember.status == "pending")
    ) or 0

    return {
        **_circle_row(db, circle),
        "my_role": requester.role,
        "my_status": requester.status,
        "today": {"namespace": namespace, "day": day_no},
        "pending_count": pending,
        "members": members,
    }


def invite_to_circle(db: Session, circle_id: str, inviter_tg_user_id: int, username: str) -> Dict[str, Any]:
    circle = _get_circle(db, circle_id)
    _require_owner(circle, inviter_tg_user_id, "invite")
    _require_room(db, circle)

    clean = (username or "").strip().lstrip("@").lower()
    target = db.scalar(select(User).where(func.lower(User.username) == clean)) if clean else None
    if not target:
        raise CircleNotFoundError("User not found")

    member = _get_member(db, circle, target.tg_user_id)
    if member and member.status in VISIBLE_STATUSES:
        raise CircleError("User is already a member or has a pending invite")

    if member:
        member.status = "pending"
        member.role = "member"
        member.left_at = None
    else:
        db.add(CircleMember(circle_pk=circle.id, tg_user_id=target.tg_user_id, role="member", status="pending"))
    circle.updated_at = datetime.utcnow()
    db.commit()

    inviter = get_user_by_tg_id(db, inviter_tg_user_id)
    logger.info("Circle %s: %s invited %s", circle.circle_id, inviter_tg_user_id, target.tg_user_id)
    return {
        "target_tg_user_id": target.tg_user_id,
        "circle_name": circle.name,
        "member_count": _active_count(db, circle),
        "inviter_username": inviter.username if inviter else None,
    }


def _answer_invite(db: Session, circle_id: str, tg_user_id: int, status: str) -> None:
    circle = _get_circle(db, circle_id)
    member = _get_member(db, circle, tg_user_id)
    if not member or member.status != "pending":
        raise CircleNotFoundError("Invite not found")
    if status == "active":
        _require_room(db, circle)
        member.joined_at = datetime.utcnow()
    member.status = status
    circle.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Circle %s: invite for %s -> %s", circle.circle_id, tg_user_id, status)


def accept_invite(db: Session, circle_id: str, tg_user_id: int) -> None:
    _answer_invite(db, circle_id, tg_user_id, "active")


def decline_invite(db: Session, circle_id: str, tg_user_id: int) -> None:
    _answer_invite(db, circle_id, tg_user_id, "declined")


def join_by_code(db: Session, invite_code: str, tg_user_id: int) -> Dict[str, Any]:
    """Join with the circle's invite code. Removed members cannot come back this way."""
    circle = db.scalar(select(Circle).where(Circle.invite_code == (invite_code or "").strip().upper()))
    if not circle:
        raise CircleNotFoundError("Circle not found")
    if not get_user_by_tg_id(db, tg_user_id):
        raise UserNotFoundError(tg_user_id)

    member = _get_member(db, circle, tg_user_id)
    if member and member.status == "active":
        raise CircleError("Already a member")
    if member and member.status == "removed":
        raise CircleAccessError("You were removed from this circle")
    _require_room(db, circle)

    if member:
        member.status = "active"
        member.joined_at = datetime.utcnow()
        member.left_at = None
    else:
        db.add(CircleMember(circle_pk=circle.id, tg_user_id=tg_user_id, role="member", status="active"))
    circle.updated_at = datetime.utcnow()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise CircleError("Already a member")
    logger.info("Circle %s: %s joined by code", circle.circle_id, tg_user_id)
    return _circle_row(db, circle)


def leave_circle(db: Session, circle_id: str, tg_user_id: int) -> None:
    circle = _get_circle(db, circle_id)
    if circle.owner_tg_user_id == tg_user_id:
        raise CircleError("The owner cannot leave the circle, delete it instead")
    member = _get_member(db, circle, tg_user_id)
    if not member or member.status not in VISIBLE_STATUSES:
        raise CircleError("You are not a member of this circle")
    member.status = "left"
    member.left_at = datetime.utcnow()
    circle.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Circle %s: %s left", circle.circle_id, tg_user_id)


def remove_member(db: Session, circle_id: str, owner_tg_user_id: int, target_tg_user_id: int) -> None:
    circle = _get_circle(db, circle_id)
    _require_owner(circle, owner_tg_user_id, "remove members")
    if target_tg_user_id == owner_tg_user_id:
        raise CircleError("You cannot remove yourself, delete the circle instead")
    member = _get_member(db, circle, target_tg_user_id)
    if not member or member.status in ("left", "removed"):
        raise CircleNotFoundError("Member not found")
    member.status = "removed"
    member.left_at = datetime.utcnow()
    circle.updated_at = datetime.utcnow()
    db.commit()
    logger.info("Circle %s: %s removed by owner", circle.circle_id, target_tg_user_id)


def delete_circle(db: Session, circle_id: str, owner_tg_user_id: int) -> None:
    circle = _get_circle(db, circle_id)
    _require_owner(circle, owner_tg_user_id, "delete the circle")
    db.execute(delete(CircleMember).where(CircleMember.circle_pk == circle.id))
    db.delete(circle)
    db.commit()
    logger.info("Circle %s deleted by %s", circle_id, owner_tg_user_id)
