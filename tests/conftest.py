"""
Shared fixtures: in-memory SQLite, an API client and seeded accounts.

Environment overrides must be set before anything under ``app`` is
imported, since settings and the engine are created at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_USER"] = ""

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.base import utcnow  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402

ADMIN_LOGIN_ID = "27900123027"
PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    # Not entered as a context manager: the lifespan would dispose the
    # engine and with it the shared in-memory database
    return TestClient(fastapi_app)


def _create_user(db, **fields) -> User:
    user = User(password_hash=hash_password(PASSWORD), is_active=True, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def primary_admin(db) -> User:
    return _create_user(
        db,
        name="Main Admin",
        email="admin@examin.com",
        login_id=ADMIN_LOGIN_ID,
        role=UserRole.ADMIN,
        is_primary_admin=True,
    )


@pytest.fixture
def student(db) -> User:
    return _create_user(
        db,
        name="Asha Roy",
        email="asha@example.com",
        login_id="51234567890",
        role=UserRole.STUDENT,
    )


@pytest.fixture
def other_student(db) -> User:
    return _create_user(
        db,
        name="Ben Das",
        email="ben@example.com",
        login_id="61234567890",
        role=UserRole.STUDENT,
    )


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


@pytest.fixture
def admin_headers(primary_admin) -> dict[str, str]:
    return auth_headers(primary_admin)


@pytest.fixture
def student_headers(student) -> dict[str, str]:
    return auth_headers(student)


def exam_payload(
    start_offset: timedelta = timedelta(hours=-1),
    end_offset: timedelta = timedelta(days=7),
    **overrides,
) -> dict:
    """Exam body with a window relative to the current time."""
    now = utcnow()
    payload = {
        "title": "Algebra Basics",
        "subject": "Mathematics",
        "duration": 60,
        "start_date": (now + start_offset).isoformat(),
        "end_date": (now + end_offset).isoformat(),
        "is_active": True,
        "questions": [
            {
                "question": "What is 2 + 2?",
                "options": [
                    {"text": "3", "is_correct": False},
                    {"text": "4", "is_correct": True},
                ],
                "marks": 1,
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_exam(client, admin_headers):
    """Factory creating an exam through the API and returning its admin view."""

    def _create(**kwargs) -> dict:
        response = client.post("/api/v1/exams", json=exam_payload(**kwargs), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
