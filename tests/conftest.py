from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_calendar, get_db, get_today
from app.config import settings
from app.crud import get_or_create_user
from app.db import make_engine
from app.engine.dates import CampaignCalendar
from app.models import Base

# Ramadan day 11
TODAY = date(2026, 3, 1)
ADMIN_TOKEN = "test-admin-token"

CALENDAR = CampaignCalendar(
    ramadan_start=date(2026, 2, 19),
    ramadan_days=30,
    preparation_start=date(2026, 2, 9),
    preparation_days=10,
    eid_date=date(2026, 3, 20),
)


@pytest.fixture
def calendar():
    return CALENDAR


@pytest.fixture
def engine(tmp_path):
    # file-backed so that every session gets its own connection
    engine = make_engine(f"sqlite:///{tmp_path / 'imantap-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(tg_user_id: int, **fields):
        user = get_or_create_user(db, tg_user_id, f"user{tg_user_id}", f"User {tg_user_id}")
        if fields:
            for key, value in fields.items():
                setattr(user, key, value)
            db.commit()
            db.refresh(user)
        return user

    return _make


@pytest.fixture
def clock():
    """Mutable "today" seen by the API."""
    return {"today": TODAY}


@pytest.fixture
def client(session_factory, clock, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "ADMIN_TG_IDS", "")

    from api_main import app

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_today] = lambda: clock["today"]
    app.dependency_overrides[get_calendar] = lambda: CALENDAR
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
