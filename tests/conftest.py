"""Shared test configuration and fixtures for Yurushiri tests"""

import logging
import os
import uuid

from tests.config import test_config, test_env

for _key, _value in test_env.items():
    os.environ[_key] = _value

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import Request  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from yurushiri.auth.dependencies import get_auth_client, get_session_context  # noqa: E402
from yurushiri.auth.models import AuthTokens, AuthUser  # noqa: E402
from yurushiri.auth.session import AuthEvents, SessionContext  # noqa: E402
from yurushiri.backends.auth_client import AuthClient  # noqa: E402
from yurushiri.backends.dify_client import DifyClient  # noqa: E402
from yurushiri.backends.storage_client import StorageClient  # noqa: E402
from yurushiri.main import app  # noqa: E402
from yurushiri.models.database import get_db  # noqa: E402
from yurushiri.routers.admin import get_storage_client  # noqa: E402
from yurushiri.services.dify_service import get_dify_client  # noqa: E402
from yurushiri.services.event_service import EventInput, EventService  # noqa: E402
from yurushiri.services.participant_service import ParticipantService  # noqa: E402
from yurushiri.services.registration_service import (  # noqa: E402
    RegistrationInput,
    RegistrationService,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served"""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


@pytest.fixture
def _db_session():
    """Private DB session for fixtures only.

    Each test gets a fresh in-memory SQLite database. Prefer the service
    fixtures over using this session directly.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    session = Session(engine)

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def fail_db_reads(_db_session, monkeypatch):
    """Call to make every read on the test session raise OperationalError"""

    def _fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is unavailable"))

    def _break():
        monkeypatch.setattr(_db_session, "exec", _fail)
        monkeypatch.setattr(_db_session, "get", _fail)

    return _break


@pytest.fixture
def event_service(_db_session):
    return EventService(_db_session)


@pytest.fixture
def registration_service(_db_session):
    return RegistrationService(_db_session)


@pytest.fixture
def participant_service(_db_session):
    return ParticipantService(_db_session)


@pytest.fixture
def make_event(event_service):
    """Factory creating an event; keyword arguments override the defaults"""

    def _make_event(**overrides):
        values = {
            "title": "もくもく勉強会",
            "description": "各自の作業を持ち寄る勉強会です",
            "date": "2025-03-15",
            "time": "14:00",
            "location": "渋谷区道玄坂1-2-3",
            "category": "テクノロジー",
            "max_attendees": 20,
            "is_public": True,
        }
        values.update(overrides)
        return event_service.create_event(EventInput(**values))

    return _make_event


@pytest.fixture
def registration_input():
    """Factory for survey answers"""

    def _registration_input(**overrides):
        values = {
            "name": "山田太郎",
            "ageGroup": "twenties",
            "occupation": "engineer",
            "discovery": "sns",
        }
        values.update(overrides)
        return RegistrationInput.parse(values)

    return _registration_input


@pytest.fixture
def dify_client_factory():
    """Build a configured DifyClient whose HTTP calls go to `handler`"""

    def _factory(handler) -> DifyClient:
        return DifyClient(test_config, transport=RecordingTransport(handler))

    return _factory


@pytest.fixture
def auth_client_factory():
    def _factory(handler) -> AuthClient:
        return AuthClient(test_config, transport=RecordingTransport(handler))

    return _factory


@pytest.fixture
def storage_requests():
    """Requests received by the storage mock used by the `client` fixtures"""
    return []


@pytest.fixture
def storage_client(storage_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        storage_requests.append(request)
        return httpx.Response(200, json={"Key": "ok"})

    return StorageClient(test_config, transport=httpx.MockTransport(handler))


@pytest.fixture
def client(_db_session, storage_client):
    """Anonymous test client using the test database and no AI backend"""
    original_overrides = app.dependency_overrides.copy()

    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = lambda: _db_session
    app.dependency_overrides[get_dify_client] = lambda: DifyClient({})
    app.dependency_overrides[get_storage_client] = lambda: storage_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)


@pytest.fixture
def test_user():
    return AuthUser(id=str(uuid.uuid4()), email="organizer@example.com")


@pytest.fixture
def authenticated_client(client, test_user):
    """Test client whose requests run as `test_user`, bypassing the auth service"""

    def mock_session_context(request: Request) -> SessionContext:
        return SessionContext(
            request,
            AuthEvents(),
            user=test_user,
            tokens=AuthTokens(access_token="test-access-token"),
        )

    app.dependency_overrides[get_session_context] = mock_session_context

    yield client, test_user

    app.dependency_overrides.pop(get_session_context, None)


@pytest.fixture
def use_auth_handler():
    """Route the app's auth client to a mock handler for one test"""

    def _use(handler) -> AuthClient:
        auth_client = AuthClient(test_config, transport=RecordingTransport(handler))
        app.dependency_overrides[get_auth_client] = lambda: auth_client
        return auth_client

    yield _use

    app.dependency_overrides.pop(get_auth_client, None)


@pytest.fixture
def use_dify_handler(dify_client_factory):
    """Route the AI endpoints to a mock handler for one test"""

    def _use(handler) -> DifyClient:
        dify_client = dify_client_factory(handler)
        app.dependency_overrides[get_dify_client] = lambda: dify_client
        return dify_client

    return _use
