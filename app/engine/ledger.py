"""
Daily completion ledger: which task ids were already paid XP on which date.
"""
from typing import Iterable, Mapping


class DailyCompletionLedger:
    """Append-only per date; entries are never removed."""

    def __init__(self, entries: Mapping[str, Iterable[str]] | None = None):
        self._entries: dict[str, list[str]] = {}
        for day, task_ids in (entries or {}).items():
            for task_id in task_ids:
                self.mark_earned(str(day), str(task_id))

    def has_earned(self, day: str, task_id: str) -> bool:
        return task_id in self._entries.get(day, [])

    def mark_earned(self, day: str, task_id: str) -> bool:
        """Record (day, task_id). Returns False if it was already there."""
        bucket = self._entries.setdefault(day, [])
        if task_id in bucket:
            return False
        bucket.append(task_id)
        return True

    def entry(self, day: str) -> list[str]:
        return list(self._entries.get(day, []))

    def to_dict(self) -> dict[str, list[str]]:
        return {day: list(task_ids) for day, task_ids in self._entries.items()}
