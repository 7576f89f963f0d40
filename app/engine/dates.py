"""
Campaign calendar and date helpers: pure functions, no DB access.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class CampaignCalendar:
    ramadan_start: date
    ramadan_days: int
    preparation_start: date
    preparation_days: int
    eid_date: date

    @classmethod
    def from_settings(cls, settings) -> "CampaignCalendar":
        return cls(
            ramadan_start=settings.RAMADAN_START_DATE,
            ramadan_days=settings.RAMADAN_DAYS,
            preparation_start=settings.PREPARATION_START_DATE,
            preparation_days=settings.PREPARATION_DAYS,
            eid_date=settings.EID_DATE,
        )

    def referral_bonus_open(self, today: date) -> bool:
        return today <= self.eid_date

    def current_day(self, today: date) -> tuple[str, int]:
        """
        Namespace and day number that ``today`` falls on, clamped to the
        campaign length. Before the preparation period it is preparation day 1.
        """
        if today >= self.ramadan_start:
            day_no = (today - self.ramadan_start).days + 1
            return "progress", max(1, min(day_no, self.ramadan_days))
        if today >= self.preparation_start:
            day_no = (today - self.preparation_start).days + 1
            return "preparation_progress", max(1, min(day_no, self.preparation_days))
        return "preparation_progress", 1


def date_for_day(anchor: date, day_no: int) -> date:
    """Calendar date of the 1-based day number counted from anchor."""
    return anchor + timedelta(days=day_no - 1)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def zone_or_utc(tz_name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except Exception:
        return ZoneInfo("UTC")


def today_in_timezone(tz_name: str, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(zone_or_utc(tz_name)).date()
