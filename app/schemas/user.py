from typing import Any, Optional

from pydantic import BaseModel, Field


class UserBootstrapIn(BaseModel):
    tg_user_id: int = Field(gt=0)
    username: Optional[str] = None
    first_name: Optional[str] = None


class UserFullOut(BaseModel):
    tg_user_id: int
    username: Optional[str] = None
    name: Optional[str] = None
    photo_url: Optional[str] = None
    language: str
    promo_code: str
    invited_count: int
    payment_status: str
    xp: int
    current_streak: int
    longest_streak: int
    last_active_date: str
    progress: dict[str, Any]
    preparation_progress: dict[str, Any]
    basic_progress: dict[str, Any]
    memorized_names: list[int]
    earned_tasks: dict[str, list[str]]
    unlocked_badges: list[str]
    extras: dict[str, Any]
