from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_calendar, get_db, get_today
from app.config import settings
from app.crud import UserNotFoundError, approve_payment, get_pending_payments, reject_payment
from app.engine.dates import CampaignCalendar
from app.models import User

router = APIRouter(prefix="/v1/admin", tags=["admin"])


def _require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    token = settings.ADMIN_API_TOKEN
    if not token:
        raise HTTPException(status_code=503, detail="Admin token is not configured")
    if x_admin_token != token:
        raise HTTPException(status_code=403, detail="Invalid admin token")


def _payment_row(u: User) -> Dict[str, Any]:
    return {
        "tg_user_id": u.tg_user_id,
        "name": u.name or u.first_name,
        "username": u.username,
        "phone_number": u.phone_number,
        "payment_status": u.payment_status,
        "paid_amount": u.paid_amount,
        "has_discount": u.has_discount,
        "receipt_file_id": u.receipt_file_id,
        "access_type": u.access_type,
        "demo_expires_at": u.demo_expires_at.isoformat() if u.demo_expires_at else None,
        "payment_date": u.payment_date.isoformat() if u.payment_date else None,
    }


@router.get("/users")
def admin_users(
    limit: int = 100,
    payment_status: Optional[str] = None,
    q: Optional[str] = None,
    _: None = Depends(_require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    limit = max(1, min(limit, 500))

    query = select(User).order_by(User.created_at.desc()).limit(limit)
    if payment_status:
        query = query.where(User.payment_status == payment_status)

    users = list(db.scalars(query))
    if q:
        q_lower = q.lower().strip()
        users = [
            u for u in users
            if (u.name and q_lower in u.name.lower())
            or (u.username and q_lower in u.username.lower())
            or q_lower in str(u.tg_user_id)
        ]

    return {
        "count": len(users),
        "items": [
            {
                **_payment_row(u),
                "xp": u.xp,
                "current_streak": u.current_streak,
                "invited_count": u.invited_count,
                "onboarding_step": u.onboarding_step,
                "created_at": u.created_at.isoformat() if u.created_at else None,
            }
            for u in users
        ],
    }


@router.get("/payments/pending")
def admin_pending_payments(_: None = Depends(_require_admin), db: Session = Depends(get_db)) -> Dict[str, Any]:
    users = get_pending_payments(db)
    return {"count": len(users), "items": [_payment_row(u) for u in users]}


@router.post("/payments/{tg_user_id}/approve")
def admin_approve_payment(
    tg_user_id: int,
    _: None = Depends(_require_admin),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    calendar: CampaignCalendar = Depends(get_calendar),
) -> Dict[str, Any]:
    try:
        user, award = approve_payment(db, tg_user_id, today, calendar)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    referral = None
    if award is not None:
        referral = {"success": award.success, "xp_awarded": award.xp_awarded, "reason": award.reason}
    return {"ok": True, **_payment_row(user), "referral_bonus": referral}


@router.post("/payments/{tg_user_id}/reject")
def admin_reject_payment(
    tg_user_id: int,
    _: None = Depends(_require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    try:
        user = reject_payment(db, tg_user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return {"ok": True, **_payment_row(user)}
