"""
XP award table: static task rewards, no DB access.
"""
import logging

logger = logging.getLogger(__name__)

TASK_XP: dict[str, int] = {
    # obligatory prayers
    "fajr": 50,
    "dhuhr": 50,
    "asr": 50,
    "maghrib": 50,
    "isha": 50,
    # fasting and night prayers
    "fasting": 100,
    "tarawih": 60,
    "tahajjud": 60,
    "sunnah_prayers": 30,
    # reading and remembrance
    "quran": 40,
    "lesson": 30,
    "morning_adhkar": 20,
    "evening_adhkar": 20,
    "dua": 20,
    "iftar_dua": 20,
    "salawat": 20,
    # deeds
    "charity": 30,
    "good_deed": 25,
}

# One of the 99 names memorized. Flat, never streak-scaled.
NAME_XP = 100

DEFAULT_TASK_XP = 10


def base_xp_for(task_id: str) -> int:
    xp = TASK_XP.get(task_id)
    if xp is None:
        logger.warning("Unknown task id %r, awarding default %d XP", task_id, DEFAULT_TASK_XP)
        return DEFAULT_TASK_XP
    return xp
