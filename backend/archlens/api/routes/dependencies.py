"""Route Dependencies — process-wide SpaceStore, Anthropic client, and ConversationService.

Invariants:
    - One SpaceStore per process; every route reads and writes through it
    - The Anthropic client is created lazily on first conversation request
    - Tests replace these via app.dependency_overrides, never by patching globals

Design Decisions:
    - Module-level singletons: deliberate exception to no-global-state rule
      (ADR: single-process uvicorn, spaces live in memory, export/import is persistence)
    - SSE helpers live here so conversation routes stay thin
"""

import json

from archlens.config import get_settings
from archlens.infrastructure.anthropic_client import ResilientAnthropicClient
from archlens.services.conversation_service import ConversationService
from archlens.services.space_store import SpaceStore

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

_store: SpaceStore | None = None
_conversation: ConversationService | None = None


def get_store() -> SpaceStore:
    global _store
    if _store is None:
        _store = SpaceStore()
    return _store


def get_conversation_service() -> ConversationService:
    """Shared service bound to the shared store and Anthropic client."""
    global _conversation
    if _conversation is None:
        settings = get_settings()
        client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
        _conversation = ConversationService(get_store(), client, settings)
    return _conversation


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
