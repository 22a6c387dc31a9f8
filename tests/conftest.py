import os
from datetime import date, timedelta

os.environ.setdefault('DATABASE_URL', 'sqlite://')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from scheduler.auth.jwt_handler import create_access_token  # noqa: E402
from scheduler.core.timeutils import local_now  # noqa: E402
from scheduler.database import Base, build_engine, get_db  # noqa: E402
from scheduler.main import app  # noqa: E402
from scheduler.models.appointment import Appointment  # noqa: E402
from scheduler.models.availability import AvailabilityRule  # noqa: E402
from scheduler.models.user import User  # noqa: E402


def next_weekday(weekday: int, after: date | None = None) -> date:
    """First date strictly after ``after`` (default: a week from today) falling on ``weekday``."""
    start = after or local_now().date() + timedelta(days=7)
    days_ahead = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days_ahead)


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'scheduler-test.db'}")
    Base.metadata.create_all(
        bind=test_engine,
        tables=[User.__table__, AvailabilityRule.__table__, Appointment.__table__],
    )
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email: str = 'owner@example.com', first_name: str = 'Ada', last_name: str = 'Lovelace') -> User:
        user = User(
            email=email,
            hashed_password='not-a-real-hash',
            first_name=first_name,
            last_name=last_name,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {'Authorization': f'Bearer {create_access_token(user.id)}'}

    return _auth_headers


@pytest.fixture
def future_monday() -> date:
    return next_weekday(0)
