# tests/conftest.py

from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from salonbook import db
from salonbook import models  # noqa: F401
from salonbook.auth import hash_password
from salonbook.main import app
from salonbook.models import Availability, ScheduleException, ServiceOffering, User

PASSWORD = "secret-pass-1"


def next_weekday(weekday: int, start: date = None) -> date:
    """First date strictly after `start` (default today) falling on `weekday`."""
    start = start or date.today()
    days = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days)


@pytest.fixture(name="engine")
def engine_fixture(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(db, "engine", engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[db.get_session] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    def _make(role: str, name: str, email: str, login: bool = False, active: bool = True) -> User:
        user = User(
            name=name,
            email=email,
            role=role,
            active=active,
            password_hash=hash_password(PASSWORD) if login else None,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def stylist(make_user):
    return make_user("stylist", "Sara Stylist", "sara@salon.test")


@pytest.fixture
def customer(make_user):
    return make_user("client", "Carl Client", "carl@example.test")


@pytest.fixture
def admin(make_user):
    return make_user("admin", "Ada Admin", "ada@salon.test")


@pytest.fixture
def make_service(session):
    def _make(name: str, price: str, minutes: int = 30) -> ServiceOffering:
        service = ServiceOffering(name=name, duration_minutes=minutes, unit_price=Decimal(price))
        session.add(service)
        session.commit()
        session.refresh(service)
        return service

    return _make


@pytest.fixture
def make_availability(session):
    def _make(stylist_id: int, weekday: int, start: time = time(9, 0), end: time = time(18, 0)) -> Availability:
        availability = Availability(stylist_id=stylist_id, weekday=weekday, start_time=start, end_time=end)
        session.add(availability)
        session.commit()
        session.refresh(availability)
        return availability

    return _make


@pytest.fixture
def make_exception(session, admin):
    def _make(day: date, stylist_id=None, start=None, end=None, kind="unavailable", reason="closed") -> ScheduleException:
        exc = ScheduleException(
            stylist_id=stylist_id,
            date=day,
            start_time=start,
            end_time=end,
            kind=kind,
            reason=reason,
            administrator_id=admin.id,
        )
        session.add(exc)
        session.commit()
        session.refresh(exc)
        return exc

    return _make


@pytest.fixture
def monday():
    return next_weekday(0)


@pytest.fixture
def login(client: TestClient):
    def _login(email: str, password: str = PASSWORD) -> dict:
        response = client.post("/auth/login", data={"username": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
