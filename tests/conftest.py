import os

os.environ.setdefault("STORE_URL", "sqlite://")
os.environ.setdefault("STORE_KEY", "test-key")
os.environ.setdefault("CRON_SECRET", "cron-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from wireline.api import create_app
from wireline.auth import create_access_token
from wireline.database import create_session_factory, init_db
from wireline.models.user import ADMIN_ROLE
from wireline.repository import UserRepository
from wireline.schemas import UserCreate


class FakeMailer:
    """Records messages instead of talking to an SMTP server."""

    def __init__(self):
        self.sent = []

    def send_deletion_warning(self, to, full_name, scheduled_at, grace_days):
        self.sent.append(("warning", to))

    def send_deletion_reminder(self, to, full_name, days_remaining):
        self.sent.append(("reminder", to, days_remaining))

    def send_account_restored(self, to, full_name):
        self.sent.append(("restored", to))


def _memory_engine():
    return create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def session_local():
    """Provide an isolated in-memory database for each test."""
    engine = _memory_engine()
    init_db(engine)
    return create_session_factory(engine)


@pytest.fixture
def broken_session_local():
    """A store without the users table, so every query fails."""
    return create_session_factory(_memory_engine())


@pytest.fixture
def repository(session_local):
    return UserRepository(session_local)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(session_local, mailer):
    return TestClient(create_app(session_factory=session_local, mailer=mailer))


@pytest.fixture
def make_user(repository):
    def _make(username="alice", password="secret", role=None, **extra):
        user = repository.create_user(
            UserCreate(
                username=username,
                password=password,
                full_name=extra.get("full_name", username.title()),
                email=extra.get("email", f"{username}@example.com"),
            )
        )
        if role is not None:
            user = repository.set_role(user.id, role)
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user("root", role=ADMIN_ROLE)
