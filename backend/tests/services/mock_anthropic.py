"""Mock Anthropic Client — simulates the streaming and single-shot Messages API.

Invariants:
    - MockAnthropicClient sequences responses (one per stream_message/create_message call)
    - A response that is an Exception is raised instead of streamed
    - Stream events follow the SDK order: message_start → content_block_delta* → message_delta
    - _Stream supports both `async for event` and `await get_final_message()`

Design Decisions:
    - Flat mock classes (no inheritance): simple, explicit, easy to debug
    - Builders return _Stream objects carrying the final _Message for the single-shot path
    - fail_after lets a stream raise mid-flight, after some text was delivered
"""

from contextlib import asynccontextmanager


# -- Mock Anthropic SDK objects ------------------------------------------------


class _Block:
    """Mock content block (text)."""

    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)


class _Usage:
    def __init__(self, input_tokens=None, output_tokens=None):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens


class _Message:
    """Mock Message returned by create_message() / stream.get_final_message()."""

    def __init__(self, content, input_tokens=100, output_tokens=50, stop_reason="end_turn"):
        self.content = content
        self.stop_reason = stop_reason
        self.usage = _Usage(input_tokens, output_tokens)


class _StreamEvent:
    def __init__(self, type, message=None, delta=None, usage=None):
        self.type = type
        self.message = message
        self.delta = delta
        self.usage = usage


class _Delta:
    def __init__(self, type, text=None):
        self.type = type
        self.text = text


class _Stream:
    """Mock async iterable stream with get_final_message()."""

    def __init__(self, events, message, fail_after=None, error=None):
        self._events = events
        self._message = message
        self._fail_after = fail_after
        self._error = error
        self._idx = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._fail_after is not None and self._idx >= self._fail_after:
            raise self._error
        if self._idx >= len(self._events):
            raise StopAsyncIteration
        ev = self._events[self._idx]
        self._idx += 1
        return ev

    async def get_final_message(self):
        return self._message


class MockAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses):
        self._responses = responses
        self._idx = 0
        self.calls = []

    def _next(self, kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"MockAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        return response

    @asynccontextmanager
    async def stream_message(self, **kwargs):
        yield self._next(kwargs)

    async def create_message(self, **kwargs):
        return await self._next(kwargs).get_final_message()


# -- Builder helpers -----------------------------------------------------------


def text_response(*chunks, tokens=(100, 50), with_usage=True):
    """Build a streamed text reply delivered as the given chunks."""
    text = "".join(chunks)
    in_tokens, out_tokens = tokens if with_usage else (None, None)
    events = [
        _StreamEvent("message_start", message=_Message([], in_tokens, 1 if with_usage else None)),
        _StreamEvent("content_block_start"),
    ]
    events.extend(
        _StreamEvent("content_block_delta", delta=_Delta("text_delta", text=c))
        for c in chunks
    )
    events.append(_StreamEvent("content_block_stop"))
    events.append(_StreamEvent("message_delta", usage=_Usage(output_tokens=out_tokens)))
    events.append(_StreamEvent("message_stop"))
    message = _Message([_Block(type="text", text=text)], in_tokens, out_tokens)
    return _Stream(events, message)


def failing_response(error, *chunks):
    """Stream that delivers `chunks` then raises `error`."""
    stream = text_response(*chunks)
    # message_start + content_block_start + one delta per chunk
    stream._fail_after = 2 + len(chunks)
    stream._error = error
    return stream


def extract_block(payload: str) -> str:
    return f"\n<design_extract>\n{payload}\n</design_extract>"
