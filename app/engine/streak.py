"""
Streak tracking: pure functions, no DB access.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

MAX_STREAK_MULTIPLIER = 3.0


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_active_date: Optional[date]


def streak_multiplier(streak_before_sync: int) -> float:
    """min(1 + 0.1 * streak, 3.0), using the streak as stored before this sync."""
    multiplier = 1 + 0.1 * max(streak_before_sync, 0)
    return min(round(multiplier, 2), MAX_STREAK_MULTIPLIER)


def apply_multiplier(base_xp: int, multiplier: float) -> int:
    # absorb float error before flooring (100 * 0.29 == 28.999999999999996)
    return int(math.floor(round(base_xp * multiplier, 6)))


def update_streak(
    current_streak: int,
    longest_streak: int,
    last_active_date: Optional[date],
    today: date,
    earned_today: bool,
) -> StreakUpdate:
    """
    Returns the streak state after a sync.
    Nothing changes unless XP was earned in this sync.
    """
    if not earned_today:
        return StreakUpdate(current_streak, max(longest_streak, current_streak), last_active_date)

    yesterday = today - timedelta(days=1)

    if last_active_date == yesterday:
        new_streak = current_streak + 1
    elif last_active_date != today:
        new_streak = 1
    else:
        new_streak = current_streak

    return StreakUpdate(new_streak, max(longest_streak, new_streak), today)
