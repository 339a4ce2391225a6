"""Conversation Service — runs one chat turn from user message to merged canvas.

Invariants:
    - A turn appends the user message and an empty assistant placeholder before any IO
    - While streaming, the placeholder only ever holds the visible prefix (no extract tail)
    - Completion is ONE store transition: final text + extract merge + usage record
    - A transport failure never touches the canvas; the placeholder becomes
      "[Request failed] <reason>" and the request is kept for an explicit retry
    - Retry replays the same conversation into the same assistant message ID
    - Regenerate only works when the latest message is from the assistant

Design Decisions:
    - Async generator of SSE-shaped dicts: the route only formats lines
      (ADR: impureim sandwich, routes stay thin)
    - Usage falls back to character-based estimates flagged estimated=True
    - Failed requests are kept in memory per space (ADR: retry is a UI affordance, not
      a durable queue)
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from archlens.config import Settings, get_settings
from archlens.core.design_space import DesignCanvas, DesignSpace, Message, UsageRecord, now_iso
from archlens.core.domain_types import MessageRole
from archlens.core.errors import AnthropicAPIError, ErrorContext, NothingToRetryError
from archlens.core.fuzzy_match import MatchThresholds, TextMatcher, TokenJaccardMatcher
from archlens.core.space_ops import (
    add_message,
    apply_extract,
    new_message,
    record_usage,
    remove_message,
    update_message_content,
)
from archlens.core.token_estimates import (
    estimate_context_tokens,
    estimate_cost_usd,
    estimate_tokens,
)
from archlens.services.space_store import SpaceStore
from archlens.services.stream_assembler import (
    StreamProgress,
    StreamResult,
    assemble_single_shot,
    assemble_stream,
    events_from_anthropic,
    text_from_message,
)
from archlens.services.system_prompt import build_conversation_prompt

logger = logging.getLogger(__name__)

FAILED_PREFIX = "[Request failed]"


@dataclass(frozen=True)
class FailedRequest:
    """Everything needed to replay a request that errored."""
    space_id: str
    conversation: tuple[Message, ...]
    assistant_message_id: str
    reason: str


def matcher_from_settings(settings: Settings) -> TextMatcher:
    return TokenJaccardMatcher(MatchThresholds(
        partial_overlap_ratio=settings.dedupe_partial_overlap_ratio,
        jaccard=settings.dedupe_jaccard_threshold,
    ))


def done_event(error: bool = False) -> dict:
    return {"type": "done", "data": {"error": error}}


class ConversationService:
    """Orchestrates send / retry / regenerate against one SpaceStore."""

    def __init__(
        self,
        store: SpaceStore,
        client,
        settings: Settings | None = None,
        matcher: TextMatcher | None = None,
    ):
        self.store = store
        self.client = client
        self.settings = settings or get_settings()
        self.matcher = matcher or matcher_from_settings(self.settings)
        self._failed: dict[str, FailedRequest] = {}

    def last_failed(self, space_id: str) -> FailedRequest | None:
        return self._failed.get(space_id)

    # --- Entry points ---------------------------------------------------------

    async def send(self, space_id: str, content: str) -> AsyncIterator[dict]:
        space = self.store.get(space_id)
        user = new_message(MessageRole.USER, content.strip())
        assistant = new_message(MessageRole.ASSISTANT)
        conversation = (*space.conversation, user)
        self.store.dispatch(space_id, lambda s: add_message(add_message(s, user), assistant))
        yield {
            "type": "message_started",
            "data": {"user_message_id": user.id, "assistant_message_id": assistant.id},
        }
        async for event in self._run(space_id, conversation, assistant.id):
            yield event

    async def retry(self, space_id: str) -> AsyncIterator[dict]:
        failed = self._failed.get(space_id)
        if failed is None:
            raise NothingToRetryError(
                "No failed request to retry", ErrorContext(space_id=space_id),
            )
        space = self.store.get(space_id)
        if space.find_message(failed.assistant_message_id) is None:
            placeholder = Message(id=failed.assistant_message_id, role=MessageRole.ASSISTANT)
            self.store.dispatch(space_id, lambda s: add_message(s, placeholder))
        else:
            self.store.dispatch(
                space_id,
                lambda s: update_message_content(s, failed.assistant_message_id, ""),
            )
        async for event in self._run(space_id, failed.conversation, failed.assistant_message_id):
            yield event

    async def regenerate(self, space_id: str) -> AsyncIterator[dict]:
        space = self.store.get(space_id)
        if not space.conversation or space.conversation[-1].role != MessageRole.ASSISTANT:
            raise NothingToRetryError(
                "Regenerate works when the latest message is from the assistant",
                ErrorContext(space_id=space_id),
            )
        last = space.conversation[-1]
        assistant = new_message(MessageRole.ASSISTANT)
        self.store.dispatch(
            space_id, lambda s: add_message(remove_message(s, last.id), assistant),
        )
        yield {
            "type": "message_started",
            "data": {"user_message_id": None, "assistant_message_id": assistant.id},
        }
        async for event in self._run(space_id, space.conversation[:-1], assistant.id):
            yield event

    # --- One request ----------------------------------------------------------

    async def _run(
        self,
        space_id: str,
        conversation: tuple[Message, ...],
        assistant_id: str,
    ) -> AsyncIterator[dict]:
        canvas = self.store.get(space_id).design_canvas
        ctx = ErrorContext(space_id=space_id, message_id=assistant_id)
        request = {
            "model": self.settings.conversation_model,
            "max_tokens": self.settings.conversation_max_tokens,
            "system": build_conversation_prompt(canvas),
            "messages": [
                {"role": m.role.value, "content": m.content}
                for m in conversation if m.content.strip()
            ],
            "context": ctx,
        }

        result: StreamResult | None = None
        try:
            if self.settings.anthropic_streaming:
                async with self.client.stream_message(**request) as stream:
                    async for item in assemble_stream(events_from_anthropic(stream)):
                        if isinstance(item, StreamProgress):
                            self._show_progress(space_id, assistant_id, item.visible_text)
                            yield {
                                "type": "progress",
                                "data": {"message_id": assistant_id, "text": item.visible_text},
                            }
                        else:
                            result = item
            else:
                response = await self.client.create_message(**request)
                result = assemble_single_shot(*text_from_message(response))
        except AnthropicAPIError as e:
            self._record_failure(space_id, conversation, assistant_id, e)
            yield e.to_sse_event()
            yield done_event(error=True)
            return

        if result is None:
            result = assemble_single_shot("")
        committed = self.store.dispatch(
            space_id,
            lambda s: self._complete_turn(s, conversation, canvas, assistant_id, result),
        )
        self._failed.pop(space_id, None)
        message = committed.find_message(assistant_id)
        yield {
            "type": "message_complete",
            "data": {
                "message_id": assistant_id,
                "text": result.text,
                "parse_error": result.parse_error,
                "created": [
                    {"type": ref.type.value, "id": ref.id}
                    for ref in (message.extracted_elements if message else ())
                ],
                "usage": {
                    "input_tokens": committed.usage_history[0].input_tokens,
                    "output_tokens": committed.usage_history[0].output_tokens,
                    "estimated": committed.usage_history[0].estimated,
                },
            },
        }
        yield done_event()

    def _show_progress(self, space_id: str, message_id: str, text: str) -> None:
        self.store.dispatch(space_id, lambda s: update_message_content(s, message_id, text))

    def _complete_turn(
        self,
        space: DesignSpace,
        conversation: tuple[Message, ...],
        canvas: DesignCanvas,
        assistant_id: str,
        result: StreamResult,
    ) -> DesignSpace:
        """Final text + merge + usage, applied as a single transition."""
        space = update_message_content(space, assistant_id, result.text)
        space = apply_extract(
            space, assistant_id, result.extract,
            parse_error=result.parse_error,
            raw_extract=result.raw_extract,
            matcher=self.matcher,
            failure_log_limit=self.settings.extraction_failure_log_limit,
        )
        return record_usage(
            space,
            self._usage_record(conversation, canvas, result),
            limit=self.settings.usage_history_limit,
        )

    def _usage_record(
        self, conversation: tuple[Message, ...], canvas: DesignCanvas, result: StreamResult,
    ) -> UsageRecord:
        model = self.settings.conversation_model
        if result.usage is not None:
            in_tokens, out_tokens = result.usage.input_tokens, result.usage.output_tokens
        else:
            in_tokens = estimate_context_tokens(conversation, canvas)
            out_tokens = estimate_tokens(result.text)
        return UsageRecord(
            at=now_iso(),
            model=model,
            input_tokens=in_tokens,
            output_tokens=out_tokens,
            estimated=result.usage is None,
            cost_usd=estimate_cost_usd(model, in_tokens, out_tokens),
        )

    def _record_failure(
        self,
        space_id: str,
        conversation: tuple[Message, ...],
        assistant_id: str,
        error: AnthropicAPIError,
    ) -> None:
        logger.error(
            "Conversation request failed: %s", error.message,
            extra={"space_id": space_id, "message_id": assistant_id, "error_code": error.code},
        )
        self.store.dispatch(
            space_id,
            lambda s: update_message_content(
                s, assistant_id, f"{FAILED_PREFIX} {error.message}",
            ),
        )
        self._failed[space_id] = FailedRequest(
            space_id=space_id,
            conversation=conversation,
            assistant_message_id=assistant_id,
            reason=error.message,
        )
