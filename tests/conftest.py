import os
import time

import jwt
import pytest

# Set test environment variables before importing the app.
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("SERVICE_AUTH_SECRET", "dm-threads-test-secret-0123456789abcdef")
os.environ.setdefault("THREAD_EVENTS_RELAY_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RESOLVE_RETRY_DELAY_MS", "0")

from dishka import Provider, Scope, make_async_container, provide
from fastapi.testclient import TestClient

from dm_threads.config.settings import Config
from dm_threads.domain.ports.repositories import (
    ConversationRepository,
    MessageRepository,
)
from dm_threads.fastapi_app import create_fastapi_app
from dm_threads.setup.ioc import HandlerProvider

from fakes import InMemoryConversationRepository, InMemoryMessageRepository

ALICE = "profile-alice"
BOB = "profile-bob"
CAROL = "profile-carol"


def _service_token(sub=ALICE, sid="test-sid", **overrides):
    now = int(time.time())
    claims = {
        "sub": sub,
        "sid": sid,
        "iat": now,
        "exp": now + 300,
        "iss": Config.SERVICE_AUTH_ISSUER,
        "aud": Config.SERVICE_AUTH_AUDIENCE,
    }
    claims.update(overrides)
    return jwt.encode(claims, Config.SERVICE_AUTH_SECRET, algorithm="HS256")


def auth_for(person_id: str) -> dict:
    return {"Authorization": f"Bearer {_service_token(sub=person_id)}"}


class InMemoryProvider(Provider):
    """Serves the in-memory repositories in place of the Prisma ones."""

    def __init__(
        self,
        conversation_repository: InMemoryConversationRepository,
        message_repository: InMemoryMessageRepository,
    ):
        super().__init__()
        self._conversation_repository = conversation_repository
        self._message_repository = message_repository

    @provide(scope=Scope.APP)
    def get_conversation_repository(self) -> ConversationRepository:
        return self._conversation_repository

    @provide(scope=Scope.APP)
    def get_message_repository(self) -> MessageRepository:
        return self._message_repository


@pytest.fixture()
def conversation_repository():
    return InMemoryConversationRepository()


@pytest.fixture()
def message_repository(conversation_repository):
    return InMemoryMessageRepository(conversation_repository)


@pytest.fixture()
def app(conversation_repository, message_repository):
    """FastAPI app wired to in-memory repositories."""
    container = make_async_container(
        HandlerProvider(),
        InMemoryProvider(conversation_repository, message_repository),
    )
    return create_fastapi_app(container=container, enable_relay=False)


@pytest.fixture()
def client(app):
    """A test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers():
    """Authentication headers with a valid JWT for ALICE."""
    return auth_for(ALICE)
