"""Stream Assembler — turns an incremental model stream into live previews + a final parse.

Invariants:
    - Raw text is accumulated exactly as received; previews are strip_extract_tail(raw)
    - A half-written <design_extract> block is never part of any preview
    - One StreamProgress per text fragment, then exactly one StreamResult, then the stream ends
    - Malformed accounting events are ignored; they never abort the stream
    - Transport errors propagate unchanged (the caller owns request-failure handling)
    - usage is None when no accounting event carried a usable count

Design Decisions:
    - Async iterator over callbacks: the caller drives the loop and may stop consuming
      at any await point (ADR: not tied to a particular transport's callback shape)
    - on_progress kept as an optional synchronous hook for callers that want push style
    - The Anthropic adapter reads events by attribute (getattr) so tests can feed
      plain objects
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

from archlens.core.extract_parser import parse_assistant_extract, strip_extract_tail
from archlens.schemas.extract import DesignExtract, empty_extract

logger = logging.getLogger(__name__)


# --- Transport events ---------------------------------------------------------

@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class UsageDelta:
    input_tokens: int | None = None
    output_tokens: int | None = None


# --- Assembler output ---------------------------------------------------------

@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class StreamProgress:
    visible_text: str


@dataclass(frozen=True)
class StreamResult:
    text: str
    extract: DesignExtract = field(default_factory=empty_extract)
    parse_error: str | None = None
    raw_extract: str = ""
    usage: TokenUsage | None = None


ProgressHook = Callable[[str], None]


class _UsageAccumulator:
    """input_tokens from the first event carrying it, output_tokens from the latest."""

    def __init__(self):
        self.input_tokens: int | None = None
        self.output_tokens: int | None = None

    def add(self, event: UsageDelta) -> None:
        if _is_count(event.input_tokens) and self.input_tokens is None:
            self.input_tokens = event.input_tokens
        if _is_count(event.output_tokens):
            self.output_tokens = event.output_tokens

    def result(self) -> TokenUsage | None:
        if self.input_tokens is None and self.output_tokens is None:
            return None
        return TokenUsage(self.input_tokens or 0, self.output_tokens or 0)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


# --- Assembly -----------------------------------------------------------------

async def assemble_stream(
    events: AsyncIterable[Any],
    on_progress: ProgressHook | None = None,
) -> AsyncIterator[StreamProgress | StreamResult]:
    """Yield a StreamProgress per text fragment, then the final StreamResult."""
    raw = ""
    usage = _UsageAccumulator()
    async for event in events:
        if isinstance(event, TextDelta):
            if not event.text:
                continue
            raw += event.text
            visible = strip_extract_tail(raw)
            if on_progress is not None:
                on_progress(visible)
            yield StreamProgress(visible_text=visible)
        elif isinstance(event, UsageDelta):
            usage.add(event)
        else:
            logger.debug("Ignoring unrecognised stream event: %r", event)

    yield _finalize(raw, usage.result())


def assemble_single_shot(text: str, usage: TokenUsage | None = None) -> StreamResult:
    """Same result shape for transports that return the whole reply at once."""
    return _finalize(text, usage)


def _finalize(raw: str, usage: TokenUsage | None) -> StreamResult:
    parsed = parse_assistant_extract(raw)
    return StreamResult(
        text=parsed.text,
        extract=parsed.extract,
        parse_error=parsed.parse_error,
        raw_extract=parsed.raw_extract,
        usage=usage,
    )


# --- Anthropic SDK adapter ----------------------------------------------------

async def events_from_anthropic(stream: AsyncIterable[Any]) -> AsyncIterator[TextDelta | UsageDelta]:
    """Map SDK stream events to transport events; everything else is skipped."""
    async for event in stream:
        etype = getattr(event, "type", None)
        if etype == "message_start":
            msg_usage = getattr(getattr(event, "message", None), "usage", None)
            if msg_usage is not None:
                yield UsageDelta(
                    input_tokens=getattr(msg_usage, "input_tokens", None),
                    output_tokens=getattr(msg_usage, "output_tokens", None),
                )
        elif etype == "message_delta":
            delta_usage = getattr(event, "usage", None)
            if delta_usage is not None:
                yield UsageDelta(output_tokens=getattr(delta_usage, "output_tokens", None))
        elif etype == "content_block_delta":
            delta = getattr(event, "delta", None)
            if getattr(delta, "type", None) == "text_delta" and getattr(delta, "text", None):
                yield TextDelta(delta.text)


def text_from_message(message: Any) -> tuple[str, TokenUsage | None]:
    """Single-shot path: join text blocks and read usage from a complete message."""
    text = "\n".join(
        getattr(block, "text", "") or ""
        for block in getattr(message, "content", []) or []
        if getattr(block, "type", None) == "text"
    )
    usage = getattr(message, "usage", None)
    in_tokens = getattr(usage, "input_tokens", None)
    out_tokens = getattr(usage, "output_tokens", None)
    if _is_count(in_tokens) and _is_count(out_tokens):
        return text, TokenUsage(in_tokens, out_tokens)
    return text, None
