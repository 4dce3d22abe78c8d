"""Pytest configuration and fixtures."""

import os
import secrets

# Settings are read at import time; configure before importing the package
os.environ.setdefault("SECRET_KEY", f"test-only-{secrets.token_urlsafe(32)}")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from daywork.core.config import settings
from daywork.core.security import create_access_token, get_password_hash
from daywork.db.session import make_engine
from daywork.main import create_app
from daywork.storage import MemoryStorage, SqlStorage

PASSWORD = "s3cret-pass"


class FakeMailer:
    """Records outgoing verification codes instead of sending them."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_verification_code(self, email, full_name, code, ttl_hours):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append({"email": email, "code": code})

    @property
    def last_code(self):
        return self.sent[-1]["code"] if self.sent else None


def memory_storage():
    return MemoryStorage()


def sqlite_memory_storage():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    storage = SqlStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    storage.create_schema()
    return storage


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Every storage-level test runs against both backends."""
    if request.param == "memory":
        return memory_storage()
    return sqlite_memory_storage()


@pytest.fixture(params=["memory", "sql"])
def threaded_storage(request, tmp_path):
    """Storage safe for real concurrent access from several threads."""
    if request.param == "memory":
        yield memory_storage()
        return
    engine = make_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    storage = SqlStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    storage.create_schema()
    yield storage
    engine.dispose()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(target))
    return target


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def app(storage, mailer):
    return create_app(storage=storage, mailer=mailer)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(storage):
    counter = {"n": 0}

    def _make_user(role="worker", username=None, email="user@example.com", skill=None, **overrides):
        counter["n"] += 1
        fields = {
            "username": username or f"{role}{counter['n']}",
            "hashed_password": get_password_hash(PASSWORD),
            "full_name": f"Test {role.title()} {counter['n']}",
            "phone": "9876543210",
            "email": email,
            "role": role,
            "location": "Pune",
        }
        fields.update(overrides)
        user = storage.create_user(**fields)
        if skill:
            storage.create_worker_profile(user_id=user.id, primary_skill=skill)
        return user

    return _make_user


@pytest.fixture
def make_job(storage):
    def _make_job(employer, **overrides):
        fields = {
            "title": "Paint a two-room flat",
            "description": "Walls and ceiling, materials provided.",
            "location": "Kothrud, Pune",
            "category": "Painting",
            "wage": "800/day",
            "duration": "3 days",
        }
        fields.update(overrides)
        return storage.create_job(employer_id=employer.id, **fields)

    return _make_job


@pytest.fixture
def client_for(app):
    """An HTTP client already logged in as the given user."""

    def _client_for(user):
        c = TestClient(app)
        token = create_access_token({"sub": str(user.id), "username": user.username, "role": user.role})
        c.cookies.set(settings.AUTH_COOKIE_NAME, token)
        return c

    return _client_for
