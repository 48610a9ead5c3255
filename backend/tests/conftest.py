"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("RETENTION_SWEEP_ENABLED", "false")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-secret")

from app.api.deps import get_blocklist_store, get_message_store
from app.api.ws import get_message_clock
from app.main import app
from app.models import Base
from app.schemas import MessageRead
from app.services import BlocklistStore, MessageStore
from relay.realtime.managers import Broadcaster, get_broadcaster
from relay.realtime.session import MessageClock

ADMIN_AUTH = ("admin@example.com", "admin-secret")


class DummyWebSocket:
    """Records what the server would have written to a client."""

    def __init__(self, *, fail: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self._fail = fail

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self._fail:
            raise RuntimeError("socket is gone")
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code
        self.application_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [payload["type"] for payload in self.sent]


def make_message(message_id: str, ts: int, **overrides: Any) -> MessageRead:
    data: dict[str, Any] = {"id": message_id, "text": f"text {message_id}", "nick": "tester", "ts": ts}
    data.update(overrides)
    return MessageRead(**data)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def message_store(session_factory) -> MessageStore:
    return MessageStore(session_factory)


@pytest.fixture()
def blocklist_store(session_factory) -> BlocklistStore:
    return BlocklistStore(session_factory)


@pytest.fixture()
def broadcaster() -> Broadcaster:
    return Broadcaster()


@pytest.fixture()
def client(message_store, blocklist_store, broadcaster) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient wired to the in-memory stores."""

    clock = MessageClock()
    app.dependency_overrides[get_message_store] = lambda: message_store
    app.dependency_overrides[get_blocklist_store] = lambda: blocklist_store
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_message_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
