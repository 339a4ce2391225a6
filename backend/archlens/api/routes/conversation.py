"""Conversation Routes — SSE chat turns, retry, regenerate, and extraction diagnostics.

Invariants:
    - Errors raised before the first event (unknown space, nothing to retry) are
      normal HTTP errors via the global handlers
    - Once streaming has started, an ArchLensError becomes an `error` event followed
      by `done` with error=true; the stream is never cut without a done event
    - Event order per turn: message_started → progress* → message_complete|error → done

Design Decisions:
    - The first event is pulled before the StreamingResponse is built, so precondition
      failures keep their status codes instead of surfacing mid-stream
    - StreamingResponse for SSE: event_generator yields formatted SSE lines
"""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from archlens.core.errors import ArchLensError
from archlens.core.space_snapshot import space_to_dict
from archlens.schemas.space import MessageCreate
from archlens.api.routes.dependencies import (
    SSE_HEADERS,
    get_conversation_service,
    get_store,
    sse_line,
)
from archlens.services.conversation_service import ConversationService, done_event
from archlens.services.space_store import SpaceStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/spaces/{space_id}", tags=["conversation"])


async def _stream_response(events: AsyncIterator[dict]) -> StreamingResponse:
    first = await anext(events)

    async def event_generator():
        yield sse_line(first)
        try:
            async for event in events:
                yield sse_line(event)
        except ArchLensError as e:
            logger.error(
                f"Stream aborted: {e.message}", extra={"error_code": e.code},
            )
            yield sse_line(e.to_sse_event())
            yield sse_line(done_event(error=True))

    return StreamingResponse(
        event_generator(), media_type="text/event-stream", headers=SSE_HEADERS,
    )


@router.post("/messages")
async def send_message(
    space_id: str,
    body: MessageCreate,
    service: ConversationService = Depends(get_conversation_service),
):
    """Append a user turn and stream the assistant reply as SSE."""
    return await _stream_response(service.send(space_id, body.content))


@router.post("/messages/retry")
async def retry_message(
    space_id: str, service: ConversationService = Depends(get_conversation_service),
):
    """Replay the last failed request into the same assistant message."""
    return await _stream_response(service.retry(space_id))


@router.post("/messages/regenerate")
async def regenerate_message(
    space_id: str, service: ConversationService = Depends(get_conversation_service),
):
    """Drop the latest assistant reply and ask again."""
    return await _stream_response(service.regenerate(space_id))


@router.get("/extraction-failures")
async def extraction_failures(space_id: str, store: SpaceStore = Depends(get_store)):
    data = space_to_dict(store.get(space_id))
    return {
        "count": data["extraction_failures"],
        "log": data["extraction_failure_log"],
    }
