"""
Shared fixtures: in-memory database, recording notifier, authenticated clients.

Environment is prepared before `signage` is imported because its modules read
configuration at import time.
"""
import os
import tempfile

os.environ.setdefault("SIGNAGE_UPLOAD_DIR", tempfile.mkdtemp(prefix="signage-uploads-"))
os.environ["SIGNAGE_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SIGNAGE_JWT_SECRET", "test-secret")
os.environ.pop("SIGNAGE_MQTT_BROKER_URL", None)

from datetime import datetime, timedelta
from typing import Any, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import signage.models.campaign  # noqa: F401
import signage.models.content  # noqa: F401
import signage.models.device  # noqa: F401
import signage.models.log  # noqa: F401
import signage.models.user  # noqa: F401
from signage.db import Base, get_db
from signage.main import app
from signage.services import storage
from tests.factories import add_user, bearer


class RecordingNotifier:
    """Stands in for MqttNotifier; keeps every message instead of sending it."""

    enabled = False
    connected = False

    def __init__(self):
        self.messages: List[Tuple[str, Any]] = []

    @property
    def published(self) -> int:
        return len(self.messages)

    async def publish_safely(self, topic: str, message: Any, qos: int = 1, retain: bool = False) -> bool:
        self.messages.append((topic, message))
        return True

    def events(self, topic: Optional[str] = None) -> List[str]:
        return [
            message.get("event")
            for sent_topic, message in self.messages
            if isinstance(message, dict) and (topic is None or sent_topic == topic)
        ]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    previous = app.state.notifier
    recorder = RecordingNotifier()
    app.state.notifier = recorder
    yield recorder
    app.state.notifier = previous


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir():
    return storage.UPLOAD_DIR


@pytest.fixture
def admin(db):
    return add_user(db, "admin", role="admin")


@pytest.fixture
def operator(db):
    return add_user(db, "operator")


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def auth_headers(operator):
    return bearer(operator)


@pytest.fixture
def june_window():
    return datetime(2025, 6, 1), datetime(2025, 6, 30)


@pytest.fixture
def live_window():
    now = datetime.utcnow()
    return now - timedelta(days=1), now + timedelta(days=1)
