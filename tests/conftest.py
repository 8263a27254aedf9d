import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, select

from habit_tracker.database import build_engine, create_db_and_tables, get_session
from habit_tracker.main import app
from habit_tracker.models import Category, Habit, Streak, User
from habit_tracker.schedule import encode_active_days, validate_active_days


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="ana@example.com", name="Ana Smith", password="secret123"):
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    body = register(client)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture
def category_id(engine):
    with Session(engine) as session:
        return session.exec(select(Category).order_by(Category.id)).first().id


@pytest.fixture
def user(session):
    user = User(name="Test User", email="test@example.com", hashed_password="x")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_habit(session, user, category_id):
    """Insert a habit with its zeroed streak row, bypassing the API."""

    def _make(frequency_type="daily", active_days=None, raw_active_days=None, is_active=True):
        if raw_active_days is None:
            raw_active_days = encode_active_days(validate_active_days(frequency_type, active_days))
        habit = Habit(
            user_id=user.id,
            category_id=category_id,
            name="Read",
            frequency_type=frequency_type,
            active_days=raw_active_days,
            is_active=is_active,
        )
        session.add(habit)
        session.flush()
        session.add(Streak(habit_id=habit.id, user_id=user.id))
        session.commit()
        session.refresh(habit)
        return habit

    return _make
