"""API test fixtures — FastAPI app with the store and conversation service overridden.

Invariants:
    - Every test gets a fresh SpaceStore and a MockAnthropicClient; the process-wide
      singletons in dependencies.py are never touched
    - dependency_overrides are cleared after each test

Design Decisions:
    - anthropic_responses is the mock's own list: a test appends replies before
      posting a message
"""

import pytest
from httpx import ASGITransport, AsyncClient

from archlens.api.routes.dependencies import get_conversation_service, get_store
from archlens.config import Settings
from archlens.main import app
from archlens.services.conversation_service import ConversationService
from archlens.services.space_store import SpaceStore

from tests.services.mock_anthropic import MockAnthropicClient


@pytest.fixture
def store():
    return SpaceStore()


@pytest.fixture
def anthropic_responses():
    return []


@pytest.fixture
async def client(store, anthropic_responses):
    """FastAPI test client bound to a fresh store."""
    service = ConversationService(
        store,
        MockAnthropicClient(anthropic_responses),
        Settings(anthropic_api_key="sk-ant-test"),
    )
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_conversation_service] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def space_id(store):
    return store.active_space_id
