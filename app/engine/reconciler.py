"""
Progress reconciliation: diff an incoming mini-app sync against the stored
snapshot and score newly completed tasks. Pure functions, no DB access.

Only the namespace entry whose calendar date is ``today`` can earn XP. Every
other entry is stored as sent (for display) and never scored. A task is paid
at most once per calendar date, tracked by the daily completion ledger, so
toggling a flag off and on again or re-sending the same payload earns nothing.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Optional

from app.engine.dates import CampaignCalendar, date_for_day
from app.engine.ledger import DailyCompletionLedger
from app.engine.streak import apply_multiplier, streak_multiplier
from app.engine.xp_table import NAME_XP, base_xp_for

logger = logging.getLogger(__name__)

DayFlags = dict[str, Any]


@dataclass(frozen=True)
class ProgressSnapshot:
    progress: dict[str, DayFlags] = field(default_factory=dict)
    preparation_progress: dict[str, DayFlags] = field(default_factory=dict)
    basic_progress: dict[str, DayFlags] = field(default_factory=dict)
    memorized_names: list[int] = field(default_factory=list)
    earned_tasks: dict[str, list[str]] = field(default_factory=dict)
    xp: int = 0
    current_streak: int = 0


@dataclass(frozen=True)
class ProgressPayload:
    """A partial sync. ``None`` means the namespace was not sent this call."""
    progress: Optional[dict[int, DayFlags]] = None
    preparation_progress: Optional[dict[int, DayFlags]] = None
    basic_progress: Optional[dict[date, DayFlags]] = None
    memorized_names: Optional[list[int]] = None


@dataclass(frozen=True)
class ReconcileResult:
    snapshot: ProgressSnapshot
    xp_delta: int
    newly_completed: list[str]
    new_names: list[int]
    multiplier: float


def _merge_namespace(
    stored: dict[str, DayFlags],
    incoming: dict,
    to_date: Callable[[Any], date],
    to_key: Callable[[Any], str],
    today: date,
    ledger: DailyCompletionLedger,
    multiplier: float,
    newly_completed: list[str],
) -> tuple[dict[str, DayFlags], int]:
    merged = {key: dict(flags) for key, flags in stored.items()}
    today_key = today.isoformat()
    xp_delta = 0

    for raw_key, flags in incoming.items():
        flags = dict(flags or {})
        merged[to_key(raw_key)] = flags

        if to_date(raw_key) != today:
            continue

        for task_id, value in flags.items():
            # clearing a flag is allowed but never revokes XP or ledger entries
            if value is not True:
                continue
            if not ledger.mark_earned(today_key, task_id):
                continue
            xp_delta += apply_multiplier(base_xp_for(task_id), multiplier)
            newly_completed.append(task_id)

    return merged, xp_delta


def reconcile(
    snapshot: ProgressSnapshot,
    payload: ProgressPayload,
    today: date,
    calendar: CampaignCalendar,
) -> ReconcileResult:
    ledger = DailyCompletionLedger(snapshot.earned_tasks)
    # scored at the streak as it stood before this sync
    multiplier = streak_multiplier(snapshot.current_streak)
    newly_completed: list[str] = []
    xp_delta = 0
    updates: dict[str, Any] = {}

    namespaces = [
        ("progress", payload.progress, lambda k: date_for_day(calendar.ramadan_start, int(k)), lambda k: str(int(k))),
        (
            "preparation_progress",
            payload.preparation_progress,
            lambda k: date_for_day(calendar.preparation_start, int(k)),
            lambda k: str(int(k)),
        ),
        ("basic_progress", payload.basic_progress, _as_date, lambda k: _as_date(k).isoformat()),
    ]
    for name, incoming, to_date, to_key in namespaces:
        if incoming is None:
            continue
        merged, gained = _merge_namespace(
            getattr(snapshot, name), incoming, to_date, to_key, today, ledger, multiplier, newly_completed
        )
        updates[name] = merged
        xp_delta += gained

    new_names: list[int] = []
    if payload.memorized_names is not None:
        stored = set(snapshot.memorized_names)
        incoming_names = set(payload.memorized_names)
        new_names = sorted(incoming_names - stored)
        removed = stored - incoming_names
        if removed:
            logger.warning("Sync dropped %d memorized names %s; keeping them", len(removed), sorted(removed))
        xp_delta += NAME_XP * len(new_names)
        updates["memorized_names"] = sorted(stored | incoming_names)

    updates["earned_tasks"] = ledger.to_dict()
    updates["xp"] = snapshot.xp + xp_delta

    return ReconcileResult(
        snapshot=replace(snapshot, **updates),
        xp_delta=xp_delta,
        newly_completed=newly_completed,
        new_names=new_names,
        multiplier=multiplier,
    )


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
