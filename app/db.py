from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.config import settings


def normalize_database_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    if url.startswith("postgresql://") and "+psycopg" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def make_engine(url: str):
    url = normalize_database_url(url)
    # bot and API processes write to the same sqlite file in development
    connect_args = {"check_same_thread": False, "timeout": 15} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
