from datetime import date
from typing import Iterator

from sqlalchemy.orm import Session

from app.config import settings
from app.db import SessionLocal
from app.engine.dates import CampaignCalendar, today_in_timezone


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_today() -> date:
    """One "today" per request, in the app's reference timezone."""
    return today_in_timezone(settings.APP_TIMEZONE)


def get_calendar() -> CampaignCalendar:
    return CampaignCalendar.from_settings(settings)
