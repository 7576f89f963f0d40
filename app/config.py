import os
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")


def _env_date(key: str, default: str) -> date:
    return date.fromisoformat(os.getenv(key, default).strip())


class Settings:
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
    MINIAPP_URL: str = os.getenv("MINIAPP_URL", "https://imantap.vercel.app")
    ADMIN_TG_IDS: str = os.getenv("ADMIN_TG_IDS", "")
    ADMIN_API_TOKEN: str = os.getenv("ADMIN_API_TOKEN", "").strip()
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./imantap.db")
    AUTO_CREATE_SCHEMA: bool = os.getenv("AUTO_CREATE_SCHEMA", "0") == "1"
    CORS_ORIGINS: list[str] = [
        item.strip()
        for item in os.getenv("CORS_ORIGINS", "*").split(",")
        if item.strip()
    ]
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    # All "today" computations use this zone, including the daily referral window.
    APP_TIMEZONE: str = os.getenv("APP_TIMEZONE", "Asia/Almaty")
    RAMADAN_START_DATE: date = _env_date("RAMADAN_START_DATE", "2026-02-19")
    RAMADAN_DAYS: int = int(os.getenv("RAMADAN_DAYS", "30"))
    PREPARATION_START_DATE: date = _env_date("PREPARATION_START_DATE", "2026-02-09")
    PREPARATION_DAYS: int = int(os.getenv("PREPARATION_DAYS", "10"))
    EID_DATE: date = _env_date("EID_DATE", "2026-03-20")

    PRICE_FULL: int = int(os.getenv("PRICE_FULL", "2490"))
    PRICE_DISCOUNT: int = int(os.getenv("PRICE_DISCOUNT", "1990"))
    PAYMENT_LINK: str = os.getenv("PAYMENT_LINK", "https://pay.kaspi.kz/pay/ygtke7vw").strip()
    DEMO_HOURS: int = int(os.getenv("DEMO_HOURS", "24"))
    SYNC_MAX_RETRIES: int = int(os.getenv("SYNC_MAX_RETRIES", "5"))

    @property
    def admin_ids(self) -> set[int]:
        return {int(x.strip()) for x in self.ADMIN_TG_IDS.split(",") if x.strip().isdigit()}


settings = Settings()
