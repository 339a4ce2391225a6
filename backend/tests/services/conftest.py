"""Service test fixtures — fresh SpaceStore, explicit Settings, conversation service factory.

Invariants:
    - Every test gets a fresh SpaceStore holding exactly one empty space
    - Settings are built explicitly (never from the process-wide get_settings cache)

Design Decisions:
    - make_service is a factory fixture: each test wires its own MockAnthropicClient
      responses, streaming flag, and limits
"""

import pytest

from archlens.config import Settings
from archlens.services.conversation_service import ConversationService
from archlens.services.space_store import SpaceStore

from tests.services.mock_anthropic import MockAnthropicClient


@pytest.fixture
def store():
    return SpaceStore()


@pytest.fixture
def space_id(store):
    return store.active_space_id


@pytest.fixture
def make_service(store):
    """Build (service, client) for a list of mock responses."""

    def _make(responses, **overrides):
        settings = Settings(anthropic_api_key="sk-ant-test", **overrides)
        client = MockAnthropicClient(responses)
        return ConversationService(store, client, settings), client

    return _make

