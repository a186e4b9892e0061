"""Shared pytest fixtures for the points ledger test suite."""

import os

os.environ.setdefault("POINTSLEDGER_DATABASE_URL", "sqlite://")

from collections.abc import Callable, Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from pointsledger import models  # noqa: E402,F401
from pointsledger.core.database import Base, build_engine, get_db  # noqa: E402
from pointsledger.main import app  # noqa: E402
from pointsledger.services import ledger_service, reward_service  # noqa: E402

# ---------------------------------------------------------------------------
# Engine & session fixtures (file-backed SQLite so threads share the store)
# ---------------------------------------------------------------------------


@pytest.fixture()
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'points.db'}"


@pytest.fixture()
def engine(database_url):
    """Create a fresh engine and schema per test."""
    engine = build_engine(database_url, lock_timeout_seconds=5.0)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db_session(session_factory) -> Generator[Session, None, None]:
    """Provide a session that is closed after each test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory) -> Generator[TestClient, None, None]:
    """TestClient wired to the FastAPI app with the test database."""

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_account(session_factory) -> Callable:
    """Open an account in its own session and return its id."""

    def _make(balance: int = 100, display_name: str = "Alex Rao", role: str = "student"):
        session = session_factory()
        try:
            account = ledger_service.open_account(
                session,
                display_name=display_name,
                role=role,
                opening_balance=balance,
            )
            return account.account_id
        finally:
            session.close()

    return _make


@pytest.fixture()
def make_reward(session_factory) -> Callable:
    """Create a reward in its own session and return its id."""

    def _make(cost: int = 30, stock: int | None = 2, active: bool = True, name: str = "Extra recess"):
        session = session_factory()
        try:
            reward = reward_service.create_reward(
                session,
                name=name,
                description="Ten more minutes of recess for one day.",
                cost=cost,
                stock=stock,
                category="privilege",
                active=active,
            )
            return reward.reward_id
        finally:
            session.close()

    return _make


@pytest.fixture()
def read_state(session_factory) -> Callable:
    """Return the committed (balance, stock) pair for an account and reward."""

    def _read(account_id, reward_id):
        session = session_factory()
        try:
            balance = ledger_service.get_balance(session, account_id)
            stock = reward_service.get_reward(session, reward_id).stock
            return balance, stock
        finally:
            session.close()

    return _read
