"""
Daily progress summary shown to circle members: pure functions, no DB access.
"""
from typing import Any, Mapping

# the core daily checklist a percentage is computed over
CORE_DAILY_TASKS = (
    "fasting",
    "fajr",
    "dhuhr",
    "asr",
    "maghrib",
    "isha",
    "tarawih",
    "quran",
    "morning_adhkar",
    "evening_adhkar",
)


def summarize_day(flags: Mapping[str, Any]) -> dict[str, Any]:
    completed = sum(1 for task_id in CORE_DAILY_TASKS if flags.get(task_id) is True)
    total = len(CORE_DAILY_TASKS)
    return {
        "percent": round(completed * 100 / total),
        "completed": completed,
        "total": total,
        "tasks": dict(flags),
    }
