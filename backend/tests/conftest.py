"""Shared fixtures: services bound to a throwaway SQLite file and a mocked Eventbrite."""
import os

# Must be set before starcheckin.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = ""
os.environ["CLIENT_ID"] = "test-client-id"
os.environ["CLIENT_SECRET"] = "test-client-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.websockets import WebSocketState

from starcheckin.db.base import Base
from starcheckin.models import attendee, token  # noqa: F401
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.broadcaster import Broadcaster
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient

API_URL = "https://www.eventbriteapi.com/v3"
TOKEN_URL = "https://www.eventbrite.com/oauth/token"


class FakeChannel:
    """Stands in for a websocket; records every send attempt."""

    def __init__(self, name: str = "channel"):
        self.name = name
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.attempts = 0
        self.fail = False

    async def send_json(self, data):
        self.attempts += 1
        if self.fail:
            raise RuntimeError("connection reset by peer")
        self.sent.append(data)

    def __repr__(self):
        return f"<FakeChannel {self.name}>"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def credential_store(session_factory):
    return CredentialStore(session_factory)


@pytest.fixture
def repository(session_factory):
    return AttendeeRepository(session_factory)


@pytest.fixture
def eventbrite():
    return EventbriteClient(base_url=API_URL, token_url=TOKEN_URL, timeout=5, max_pages=5)


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def authorized(credential_store):
    return credential_store.set_credential("access-123", "refresh-456")


@pytest.fixture
def client(session_factory, credential_store, repository, eventbrite, broadcaster):
    """TestClient with every service dependency pointed at the test fixtures."""
    from starcheckin.api import deps
    from starcheckin.db.session import get_db
    from starcheckin.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_credential_store] = lambda: credential_store
    app.dependency_overrides[deps.get_attendee_repository] = lambda: repository
    app.dependency_overrides[deps.get_eventbrite_client] = lambda: eventbrite
    app.dependency_overrides[deps.get_broadcaster] = lambda: broadcaster

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
