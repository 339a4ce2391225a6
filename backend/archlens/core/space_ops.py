"""Space Ops — state transitions at the DesignSpace level.

Every public function here is an operation (space, ...) → space that the store can
dispatch. Canvas-only edits are lifted into space operations with canvas_op().

Invariants:
    - Pure: no IO, no clock reads beyond timestamps on newly created records
    - apply_extract tags the source message with exactly the items it created
    - Extraction failure log holds the most recent entries first, capped (oldest evicted)
    - Usage history holds the most recent records first, capped
    - Removing a message scrubs it from every source_messages list

Design Decisions:
    - Parse failures are data, not exceptions: counted on the space so a diagnostics
      view can show them (ADR: the end user only sees the visible text)
    - Space status is derived from the canvas (converging once a decision exists)
      except "crystallized", which only set_outputs can assign
"""

import logging
from dataclasses import replace
from typing import Callable

from archlens.core.canvas_merge import merge_extract
from archlens.core.design_space import (
    DesignCanvas,
    DesignSpace,
    ExtractionFailure,
    Message,
    Outputs,
    UsageRecord,
    new_id,
    now_iso,
)
from archlens.core.domain_types import MessageRole, SpaceStatus
from archlens.core.fuzzy_match import DEFAULT_MATCHER, TextMatcher
from archlens.schemas.extract import DesignExtract

logger = logging.getLogger(__name__)

FAILURE_EXCERPT_CHARS = 500
DEFAULT_FAILURE_LOG_LIMIT = 30
DEFAULT_USAGE_HISTORY_LIMIT = 50

SpaceOperation = Callable[[DesignSpace], DesignSpace]


# --- Lifting canvas edits -----------------------------------------------------

def with_canvas(space: DesignSpace, canvas: DesignCanvas) -> DesignSpace:
    if canvas is space.design_canvas:
        return space
    return replace(space, design_canvas=canvas, status=_derive_status(space.status, canvas))


def canvas_op(fn: Callable[..., DesignCanvas], *args, **kwargs) -> SpaceOperation:
    """Wrap a canvas function (canvas, *args) → canvas as a space operation."""
    def operation(space: DesignSpace) -> DesignSpace:
        return with_canvas(space, fn(space.design_canvas, *args, **kwargs))

    return operation


def _derive_status(current: SpaceStatus, canvas: DesignCanvas) -> SpaceStatus:
    if current == SpaceStatus.CRYSTALLIZED:
        return current
    return SpaceStatus.CONVERGING if canvas.decisions else current


# --- Space metadata -----------------------------------------------------------

def rename_space(space: DesignSpace, title: str) -> DesignSpace:
    return replace(space, title=title.strip() or space.title)


def set_outputs(space: DesignSpace, outputs: Outputs) -> DesignSpace:
    return replace(space, outputs=outputs, status=SpaceStatus.CRYSTALLIZED)


# --- Conversation -------------------------------------------------------------

def new_message(role: MessageRole, content: str = "") -> Message:
    return Message(id=new_id(), role=role, content=content, timestamp=now_iso())


def add_message(space: DesignSpace, message: Message) -> DesignSpace:
    return replace(space, conversation=(*space.conversation, message))


def update_message_content(space: DesignSpace, message_id: str, content: str) -> DesignSpace:
    if space.find_message(message_id) is None:
        return space
    return replace(space, conversation=tuple(
        replace(m, content=content) if m.id == message_id else m
        for m in space.conversation
    ))


def remove_message(space: DesignSpace, message_id: str) -> DesignSpace:
    """Drop a message and every provenance link that pointed at it."""
    if space.find_message(message_id) is None:
        return space
    canvas = space.design_canvas
    scrubbed = replace(
        canvas,
        options=_scrub_sources(canvas.options, message_id),
        decisions=_scrub_sources(canvas.decisions, message_id),
        constraints=_scrub_sources(canvas.constraints, message_id),
    )
    return replace(
        space,
        conversation=tuple(m for m in space.conversation if m.id != message_id),
        design_canvas=scrubbed,
    )


def _scrub_sources(items: tuple, message_id: str) -> tuple:
    return tuple(
        replace(i, source_messages=tuple(s for s in i.source_messages if s != message_id))
        if message_id in i.source_messages else i
        for i in items
    )


# --- Extraction ---------------------------------------------------------------

def apply_extract(
    space: DesignSpace,
    message_id: str,
    extract: DesignExtract,
    parse_error: str | None = None,
    raw_extract: str = "",
    matcher: TextMatcher = DEFAULT_MATCHER,
    failure_log_limit: int = DEFAULT_FAILURE_LOG_LIMIT,
) -> DesignSpace:
    """Merge one turn's extract and tag the source message with what it created."""
    outcome = merge_extract(space.design_canvas, message_id, extract, matcher)
    next_space = with_canvas(space, outcome.canvas)
    next_space = replace(next_space, conversation=tuple(
        replace(m, extracted_elements=outcome.created) if m.id == message_id else m
        for m in next_space.conversation
    ))
    if parse_error:
        next_space = record_extraction_failure(
            next_space, message_id, parse_error, raw_extract, failure_log_limit,
        )
    return next_space


def record_extraction_failure(
    space: DesignSpace,
    message_id: str,
    reason: str,
    raw_extract: str = "",
    limit: int = DEFAULT_FAILURE_LOG_LIMIT,
) -> DesignSpace:
    logger.warning(
        "Extraction parse failure: %s", reason,
        extra={"space_id": space.id, "message_id": message_id},
    )
    entry = ExtractionFailure(
        at=now_iso(),
        message_id=message_id,
        reason=reason,
        raw_excerpt=(raw_extract or "")[:FAILURE_EXCERPT_CHARS],
    )
    return replace(
        space,
        extraction_failures=space.extraction_failures + 1,
        extraction_failure_log=(entry, *space.extraction_failure_log)[:limit],
    )


# --- Usage --------------------------------------------------------------------

def record_usage(
    space: DesignSpace, usage: UsageRecord, limit: int = DEFAULT_USAGE_HISTORY_LIMIT,
) -> DesignSpace:
    return replace(space, usage_history=(usage, *space.usage_history)[:limit])
