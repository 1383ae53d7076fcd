"""Pytest configuration and shared fixtures."""

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, Generator, List, Optional

# Configure the app before any milestone_tracker module reads its config
_TEMP_DB = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_TEMP_DB.close()
_TEST_DB_URL = os.environ.get("MILESTONE_TRACKER_TEST_DATABASE_URL") or f"sqlite:///{_TEMP_DB.name}"

os.environ["MILESTONE_TRACKER_DATABASE_URL"] = _TEST_DB_URL
os.environ["MILESTONE_TRACKER_LOG_TO_FILE"] = "0"
os.environ.setdefault(
    "MILESTONE_TRACKER_JWT_SECRET_KEY",
    "tests-only-7f3c9a1e5b2d4f6a8c0e2b4d6f8a0c2e4b6d8f0a",
)

import httpx
import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from milestone_tracker.auth.jwt_auth import jwt_manager
from milestone_tracker.auth.security import hash_password
from milestone_tracker.core.enums import UserRole
from milestone_tracker.db.database import create_database_engine
from milestone_tracker.db.models import Milestone, Notification, Tracking, User

TEST_PASSWORD = "correct-horse-battery"


def _project_root() -> Path:
    """Return the repository root path."""
    return Path(__file__).resolve().parents[1]


def _run_alembic_migrations(db_url: str) -> None:
    """Run Alembic migrations programmatically for the test database."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(_project_root() / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)
    alembic_cfg.attributes["database_url"] = db_url

    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def setup_test_env():
    """Create the test database schema once per session."""
    _run_alembic_migrations(_TEST_DB_URL)

    yield _TEST_DB_URL

    if _TEST_DB_URL.endswith(_TEMP_DB.name):
        for suffix in ("", "-wal", "-shm"):
            Path(_TEMP_DB.name + suffix).unlink(missing_ok=True)


@pytest.fixture(scope="session")
def db_engine(setup_test_env):
    engine = create_database_engine(setup_test_env)
    yield engine
    engine.dispose()


@pytest.fixture
def test_db(db_engine):
    """Session factory bound to the migrated test database; tables are emptied afterwards."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    yield TestingSessionLocal

    session = TestingSessionLocal()
    try:
        # Children first
        for model in (Notification, Tracking, Milestone, User):
            session.query(model).delete()
        session.commit()
    finally:
        session.close()


@pytest.fixture
def db_session(test_db):
    """Session for arranging test data.

    Objects stay loaded after commit so reading them does not reopen a
    transaction; on SQLite every transaction holds the write lock.
    """
    session = test_db(expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def read_session(test_db):
    """Open a short-lived session for asserting on committed state."""

    @contextmanager
    def _open():
        session = test_db()
        try:
            yield session
        finally:
            session.close()

    return _open


@pytest.fixture
def client(test_db) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override."""
    from milestone_tracker.main import app
    from milestone_tracker.db.database import get_db

    def override_get_db():
        # Use a fresh session per request in tests
        db = test_db()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(test_db) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async client that drives the app on the test's event loop, as uvicorn does."""
    from milestone_tracker.main import app
    from milestone_tracker.db.database import get_db

    def override_get_db():
        db = test_db()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# Factory helpers to create users, milestones and headers on demand
@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    counter = {"n": 0}
    # One hash for every user in a test; PBKDF2 is deliberately slow
    salt_hex, hash_hex = hash_password(TEST_PASSWORD)

    def _make(
        role: UserRole = UserRole.TRACKER,
        username: Optional[str] = None,
        queue_remaining: Optional[int] = None,
        daily_tracking_limit: int = 3,
        interest_categories: Optional[List[str]] = None,
    ) -> User:
        counter["n"] += 1
        username = username or f"{role.value}{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_hex,
            password_salt=salt_hex,
            role=role.value,
            daily_tracking_limit=daily_tracking_limit,
            queue_remaining=(
                daily_tracking_limit if queue_remaining is None else queue_remaining
            ),
            interest_categories=interest_categories or [],
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_milestone(db_session) -> Callable[..., Milestone]:
    def _make(owner: User, name: str = "Launch", progress: int = 0, **kwargs: Any) -> Milestone:
        milestone = Milestone(
            owner_id=owner.id, name=name, progress=progress, tracking_count=0, **kwargs
        )
        db_session.add(milestone)
        db_session.commit()
        return milestone

    return _make


@pytest.fixture
def auth_headers_for() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token, _ = jwt_manager.create_access_token(user.id, UserRole(user.role), user.username)
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    return _headers


@pytest.fixture
def owner(make_user) -> User:
    return make_user(UserRole.OWNER, username="olivia")


@pytest.fixture
def tracker(make_user) -> User:
    return make_user(UserRole.TRACKER, username="theo")


@pytest.fixture
def user_password() -> str:
    """Plain-text password of every user built by ``make_user``."""
    return TEST_PASSWORD
