"""Resilient Anthropic Client — wraps AsyncAnthropic with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, 529, connection): retried up to max_retries with backoff
    - Timeouts and client errors (4xx except 429): immediate failure, no retry
    - Streams are never retried mid-flight (partial text may already be on screen)
    - All failures mapped to AnthropicAPIError carrying a user-facing message

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the conversation service
      (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - APITimeoutError is checked before APIConnectionError (it is a subclass)
    - One mapping table for both paths: the assistant placeholder shows the same text
      whether the turn streamed or not
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    InternalServerError,
    RateLimitError,
)

from archlens.core.errors import AnthropicAPIError, ErrorContext

logger = logging.getLogger(__name__)

# ADR: OverloadedError (HTTP 529) is not re-exported by every SDK release.
# Detect via status code on APIStatusError instead of relying on private import.
_OVERLOADED_STATUS = 529

_USER_MESSAGES = {
    "rate_limit": "Rate limited by Anthropic. Wait a moment, then retry.",
    "overloaded": "Claude is overloaded right now. Retry in a moment.",
    "connection_error": "Could not reach Anthropic. Check the connection and retry.",
    "timeout": "The request to Claude timed out. Retry to try again.",
    "authentication": "The Anthropic API key was rejected. Check ANTHROPIC_API_KEY.",
    "client_error": "Claude rejected the request.",
}


def _is_overloaded(e: APIError) -> bool:
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


def _status_reason(e: APIError) -> str:
    status = getattr(e, "status_code", None)
    return f"({status}) {e}" if status else str(e)


def _api_error(
    message: str,
    error_type: str,
    context: ErrorContext | None,
    retry_after_ms: int | None = None,
) -> AnthropicAPIError:
    ctx = context or ErrorContext()
    ctx.user_message = _USER_MESSAGES.get(error_type)
    return AnthropicAPIError(message, error_type, retry_after_ms=retry_after_ms, context=ctx)


def _retry_after_ms(error: APIStatusError) -> int | None:
    """Retry-After header in milliseconds, if the server sent a usable one."""
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return int(float(value) * 1000) if value else None
    except ValueError:
        return None


def map_api_error(e: APIError, context: ErrorContext | None) -> AnthropicAPIError:
    """Terminal mapping: no retry decisions, every APIError becomes AnthropicAPIError."""
    if isinstance(e, RateLimitError):
        return _api_error(
            "Rate limit exceeded", "rate_limit", context, _retry_after_ms(e),
        )
    if isinstance(e, APITimeoutError):
        return _api_error("API timeout", "timeout", context)
    if isinstance(e, (APIConnectionError, InternalServerError)):
        return _api_error(f"Connection error: {e}", "connection_error", context)
    if _is_overloaded(e):
        return _api_error("Anthropic API overloaded (529)", "overloaded", context)
    if isinstance(e, AuthenticationError):
        return _api_error(_status_reason(e), "authentication", context)
    return _api_error(_status_reason(e), "client_error", context)


class ResilientAnthropicClient:
    """Wraps Anthropic client with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 300,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        """Single-shot message with automatic retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=model, max_tokens=max_tokens,
                    system=system, messages=messages,
                )
                self._log_success(response, attempt, context)
                return response

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except APITimeoutError:
                raise _api_error("API timeout", "timeout", context)

            except (APIConnectionError, InternalServerError) as e:
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if not _is_overloaded(e):
                    raise map_api_error(e, context)
                await self._handle_transient_error(e, attempt, context)

    @asynccontextmanager
    async def stream_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        """Stream message with Anthropic error → AnthropicAPIError mapping.

        No retry — caller decides. Catches errors from both connection setup
        AND mid-stream (errors from the caller's async for propagate through
        the yield in asynccontextmanager). CancelledError passes through.
        """
        try:
            cm = self.client.messages.stream(
                model=model, max_tokens=max_tokens,
                system=system, messages=messages,
            )
            async with cm as stream:
                yield stream
        except APIError as e:
            raise map_api_error(e, context)

    def _log_success(self, response, attempt: int, context: ErrorContext | None) -> None:
        usage = response.usage
        logger.info(
            "Anthropic API success",
            extra={
                "attempt": attempt + 1,
                "space_id": context.space_id if context else None,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        retry_after_ms = _retry_after_ms(e)
        if attempt >= self.max_retries:
            raise _api_error(
                "Rate limit exceeded after retries", "rate_limit", context, retry_after_ms,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        if attempt >= self.max_retries:
            error_type = (
                "overloaded" if isinstance(e, APIError) and _is_overloaded(e)
                else "connection_error"
            )
            raise _api_error(
                f"Transient failure after {self.max_retries} retries: {e}",
                error_type, context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Transient error, retry after {delay}ms: {e}",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
