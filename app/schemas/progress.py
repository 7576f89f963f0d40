from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.config import settings
from app.engine.reconciler import ProgressPayload

DayFlags = dict[str, Any]


def _check_day_numbers(days: Optional[dict[int, DayFlags]], limit: int) -> Optional[dict[int, DayFlags]]:
    if days is None:
        return None
    bad = [d for d in days if d < 1 or d > limit]
    if bad:
        raise ValueError(f"day numbers must be within 1..{limit}, got {sorted(bad)}")
    return days


class ProgressSyncIn(BaseModel):
    tg_user_id: int = Field(gt=0)
    progress: Optional[dict[int, DayFlags]] = None
    preparation_progress: Optional[dict[int, DayFlags]] = None
    basic_progress: Optional[dict[date, DayFlags]] = None
    memorized_names: Optional[list[int]] = None

    # passthrough profile fields, stored as sent
    name: Optional[str] = Field(default=None, max_length=255)
    photo_url: Optional[str] = Field(default=None, max_length=512)
    language: Optional[str] = Field(default=None, max_length=8)
    extras: Optional[dict[str, Any]] = None

    # anything else, a client-side "xp" included, is dropped
    model_config = {"extra": "ignore"}

    @field_validator("progress")
    @classmethod
    def validate_progress(cls, v):
        return _check_day_numbers(v, settings.RAMADAN_DAYS)

    @field_validator("preparation_progress")
    @classmethod
    def validate_preparation(cls, v):
        return _check_day_numbers(v, settings.PREPARATION_DAYS)

    @field_validator("memorized_names")
    @classmethod
    def validate_names(cls, v):
        if v is not None and any(n < 1 or n > 99 for n in v):
            raise ValueError("memorized names are numbered 1..99")
        return v

    def to_payload(self) -> ProgressPayload:
        return ProgressPayload(
            progress=self.progress,
            preparation_progress=self.preparation_progress,
            basic_progress=self.basic_progress,
            memorized_names=self.memorized_names,
        )

    def profile_fields(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "photo_url": self.photo_url,
            "language": self.language,
            "extras": self.extras,
        }


class ProgressSyncOut(BaseModel):
    success: bool
    xp_added: int
    streak_multiplier: float
    current_streak: int
    longest_streak: int
    xp: int
    newly_completed: list[str]
    new_badges: list[str]
