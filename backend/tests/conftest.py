import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

import opscadence.models  # noqa: F401
from opscadence.clock import FixedClock, get_clock
from opscadence.database import Base, build_engine, get_db
from opscadence.main import app
from opscadence.models.cadence import Cadence

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)  # Monday


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def client(session_factory, clock) -> TestClient:
    # Override dependencies: isolated database and a frozen clock
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    response = client.post("/token", data={"username": "admin", "password": "changeme"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def cron_headers() -> dict:
    return {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def make_cadence(db: Session):
    """Insert a cadence directly, bypassing initial generation."""
    def _make(schedule_config=None, **overrides):
        data = {
            "workspace_id": "ws-1",
            "form_id": "form-1",
            "name": "Daily Check",
            "schedule_config": schedule_config or {
                "pattern": "daily",
                "time": "09:00",
                "timezone": "UTC",
                "completion_window_hours": 4,
            },
            "notification_config": {},
            "assigned_to": [],
            "is_active": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        cadence = Cadence(**data)
        db.add(cadence)
        db.commit()
        db.refresh(cadence)
        return cadence
    return _make


@pytest.fixture
def make_instance(db: Session):
    """Insert an instance with explicit timing and status."""
    from opscadence.models.instance import Instance

    def _make(scheduled_for, due_at, status="pending", **overrides):
        data = {
            "workspace_id": "ws-1",
            "form_id": "form-1",
            "instance_name": f"Check - {scheduled_for.date().isoformat()}",
            "scheduled_for": scheduled_for,
            "due_at": due_at,
            "status": status,
            "assigned_to": [],
            "extra_metadata": {},
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        instance = Instance(**data)
        db.add(instance)
        db.commit()
        db.refresh(instance)
        return instance
    return _make
