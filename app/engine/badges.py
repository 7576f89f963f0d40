"""
Badge rules: pure functions, no DB access.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Badge:
    id: str
    counter: str
    goal: int


BADGES: list[Badge] = [
    Badge("social_butterfly", "invited_count", 10),
    Badge("legend", "xp", 10000),
    Badge("week_streak", "longest_streak", 7),
]


def badges_to_unlock(stats: dict, unlocked: list[str]) -> list[str]:
    """Badge ids newly earned by ``stats``; already unlocked ones are never re-listed."""
    return [
        badge.id
        for badge in BADGES
        if badge.id not in unlocked and int(stats.get(badge.counter) or 0) >= badge.goal
    ]
