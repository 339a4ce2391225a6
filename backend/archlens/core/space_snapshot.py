"""Space Snapshot — JSON-safe serialization, export envelope, and repairing import.

Invariants:
    - space_to_dict produces plain JSON types only (no Enums, no tuples, no dataclasses)
    - space_from_dict never raises on nested data: bad fields fall back to defaults
    - Imported canvases satisfy canvas_invariants (dangling links cleared, active re-derived)
    - Only the envelope can be rejected: not an object, or spaces missing/empty/not a list
    - Round-trip (to_dict → from_dict) preserves IDs, order, and references

Design Decisions:
    - Hand-written mappings over dataclasses.asdict: enum → value, tuple → list, and
      source_messages in the {"message_id": ...} shape older export files use
    - Per-field coercion helpers keep repair rules in one place (ADR: repair, never reject,
      individual space records)
"""

import math
from dataclasses import fields, replace
from enum import Enum
from typing import Any, TypeVar

from archlens.core.canvas_invariants import enforce_canvas_invariants
from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    DesignSpace,
    ElementRef,
    ExtractionFailure,
    Message,
    OpenQuestion,
    Option,
    Outputs,
    Reference,
    Task,
    UsageRecord,
    new_id,
    now_iso,
)
from archlens.core.domain_types import (
    EXPORT_FORMAT_VERSION,
    ConstraintSource,
    ElementType,
    MessageRole,
    OptionStatus,
    QuestionStatus,
    ReferenceType,
    SpaceStatus,
)
from archlens.core.errors import ImportValidationError

E = TypeVar("E", bound=Enum)


# --- Serialization ------------------------------------------------------------

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    return value


def _with_source_refs(item: Any) -> dict:
    data = _plain(item)
    data["source_messages"] = [{"message_id": m} for m in item.source_messages]
    return data


def canvas_to_dict(canvas: DesignCanvas) -> dict:
    return {
        "problem_statement": canvas.problem_statement,
        "active_option_id": canvas.active_option_id,
        "options": [_with_source_refs(o) for o in canvas.options],
        "decisions": [_with_source_refs(d) for d in canvas.decisions],
        "constraints": [_with_source_refs(c) for c in canvas.constraints],
        "open_questions": [_plain(q) for q in canvas.open_questions],
        "references": [_plain(r) for r in canvas.references],
    }


def space_to_dict(space: DesignSpace) -> dict:
    return {
        "id": space.id,
        "title": space.title,
        "created_at": space.created_at,
        "updated_at": space.updated_at,
        "status": space.status.value,
        "conversation": [_plain(m) for m in space.conversation],
        "design_canvas": canvas_to_dict(space.design_canvas),
        "outputs": _plain(space.outputs),
        "usage_history": [_plain(u) for u in space.usage_history],
        "extraction_failures": space.extraction_failures,
        "extraction_failure_log": [_plain(f) for f in space.extraction_failure_log],
    }


def build_export_document(spaces: list[DesignSpace], active_space_id: str) -> dict:
    return {
        "version": EXPORT_FORMAT_VERSION,
        "exported_at": now_iso(),
        "activeSpaceId": active_space_id,
        "spaces": [space_to_dict(s) for s in spaces],
    }


# --- Coercion helpers ---------------------------------------------------------

def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _records(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


def _float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value) if math.isfinite(value) else default


def _enum(enum_cls: type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def _message_ids(value: Any) -> tuple[str, ...]:
    """Accept both ["id", ...] and [{"message_id": "id"}, ...]."""
    if not isinstance(value, list):
        return ()
    ids = []
    for entry in value:
        if isinstance(entry, str) and entry:
            ids.append(entry)
        elif isinstance(entry, dict) and _opt_str(entry.get("message_id")):
            ids.append(entry["message_id"])
    return tuple(ids)


class _IdAllocator:
    """Keeps IDs unique within one canvas; missing or repeated IDs get fresh ones."""

    def __init__(self):
        self.seen: set[str] = set()

    def take(self, value: Any) -> str:
        candidate = _opt_str(value)
        if candidate is None or candidate in self.seen:
            candidate = new_id()
        self.seen.add(candidate)
        return candidate


# --- Deserialization ----------------------------------------------------------

def _option(d: dict, ids: _IdAllocator) -> Option:
    score = d.get("branch_score")
    return Option(
        id=ids.take(d.get("id")),
        title=_str(d.get("title"), "Untitled option"),
        description=_str(d.get("description")),
        status=_enum(OptionStatus, d.get("status"), OptionStatus.CONSIDERING),
        rejection_reason=_opt_str(d.get("rejection_reason")),
        finish_reason=_opt_str(d.get("finish_reason")),
        branch_score=_int(score) if score is not None else None,
        todos=_str(d.get("todos")),
        source_messages=_message_ids(d.get("source_messages")),
    )


def _decision(d: dict, ids: _IdAllocator) -> Decision:
    return Decision(
        id=ids.take(d.get("id")),
        title=_str(d.get("title"), "Untitled decision"),
        reasoning=_str(d.get("reasoning")),
        trade_offs=_str(d.get("trade_offs")),
        option_id=_opt_str(d.get("option_id")),
        source_messages=_message_ids(d.get("source_messages")),
    )


def _constraint(d: dict, ids: _IdAllocator) -> Constraint:
    return Constraint(
        id=ids.take(d.get("id")),
        description=_str(d.get("description")),
        source=_enum(ConstraintSource, d.get("source"), ConstraintSource.CONVERSATION),
        decision_id=_opt_str(d.get("decision_id")),
        source_messages=_message_ids(d.get("source_messages")),
    )


def _question(d: dict, ids: _IdAllocator) -> OpenQuestion:
    return OpenQuestion(
        id=ids.take(d.get("id")),
        question=_str(d.get("question")),
        context=_str(d.get("context")),
        status=_enum(QuestionStatus, d.get("status"), QuestionStatus.OPEN),
        resolution=_opt_str(d.get("resolution")),
        decision_id=_opt_str(d.get("decision_id")),
    )


def _reference(d: dict, ids: _IdAllocator) -> Reference:
    return Reference(
        id=ids.take(d.get("id")),
        type=_enum(ReferenceType, d.get("type"), ReferenceType.PASTE),
        label=_str(d.get("label"), "Reference"),
        content=_str(d.get("content")),
        decision_id=_opt_str(d.get("decision_id")),
    )


def canvas_from_dict(data: Any) -> DesignCanvas:
    """Rebuild a canvas, repairing anything that would break the invariants."""
    d = _dict(data)
    ids = _IdAllocator()
    canvas = DesignCanvas(
        problem_statement=_str(d.get("problem_statement")),
        active_option_id=_opt_str(d.get("active_option_id")),
        options=tuple(_option(o, ids) for o in _records(d.get("options"))),
        decisions=tuple(_decision(x, ids) for x in _records(d.get("decisions"))),
        constraints=tuple(_constraint(c, ids) for c in _records(d.get("constraints"))),
        open_questions=tuple(_question(q, ids) for q in _records(d.get("open_questions"))),
        references=tuple(_reference(r, ids) for r in _records(d.get("references"))),
    )
    return enforce_canvas_invariants(canvas)


def _element_refs(value: Any) -> tuple[ElementRef, ...]:
    refs = []
    for entry in _records(value):
        element_id = _opt_str(entry.get("id"))
        try:
            element_type = ElementType(entry.get("type"))
        except ValueError:
            continue
        if element_id:
            refs.append(ElementRef(element_type, element_id))
    return tuple(refs)


def _message(d: dict) -> Message:
    return Message(
        id=_opt_str(d.get("id")) or new_id(),
        role=_enum(MessageRole, d.get("role"), MessageRole.USER),
        content=_str(d.get("content")),
        timestamp=_str(d.get("timestamp")) or now_iso(),
        extracted_elements=_element_refs(d.get("extracted_elements")),
    )


def _task(d: dict) -> Task:
    return Task(
        id=_opt_str(d.get("id")) or new_id(),
        title=_str(d.get("title"), "Untitled task"),
        description=_str(d.get("description")),
        context=_str(d.get("context")),
        files_components=_str_tuple(d.get("files_components")),
        acceptance_criteria=_str_tuple(d.get("acceptance_criteria")),
        depends_on=_str_tuple(d.get("depends_on")),
        related_decisions=_str_tuple(d.get("related_decisions")),
    )


def outputs_from_dict(data: Any) -> Outputs:
    d = _dict(data)
    return Outputs(
        design_doc=_opt_str(d.get("design_doc")),
        tasks=tuple(_task(t) for t in _records(d.get("tasks"))),
        generated_at=_opt_str(d.get("generated_at")),
    )


def _usage(d: dict) -> UsageRecord:
    return UsageRecord(
        at=_str(d.get("at")) or now_iso(),
        model=_str(d.get("model"), "unknown"),
        input_tokens=_int(d.get("input_tokens")),
        output_tokens=_int(d.get("output_tokens")),
        estimated=bool(d.get("estimated", False)),
        cost_usd=_float(d.get("cost_usd")),
    )


def _failure(d: dict) -> ExtractionFailure:
    return ExtractionFailure(
        at=_str(d.get("at")) or now_iso(),
        message_id=_str(d.get("message_id")),
        reason=_str(d.get("reason"), "unknown"),
        raw_excerpt=_str(d.get("raw_excerpt")),
    )


def space_from_dict(data: Any) -> DesignSpace:
    """Rebuild a space from an export record. Never raises on nested fields."""
    d = _dict(data)
    created = _str(d.get("created_at")) or now_iso()
    return DesignSpace(
        id=_opt_str(d.get("id")) or new_id(),
        title=_str(d.get("title")) or "Untitled Design",
        created_at=created,
        updated_at=_str(d.get("updated_at")) or created,
        status=_enum(SpaceStatus, d.get("status"), SpaceStatus.EXPLORING),
        conversation=tuple(_message(m) for m in _records(d.get("conversation"))),
        design_canvas=canvas_from_dict(d.get("design_canvas")),
        outputs=outputs_from_dict(d.get("outputs")),
        usage_history=tuple(_usage(u) for u in _records(d.get("usage_history"))),
        extraction_failures=max(0, _int(d.get("extraction_failures"))),
        extraction_failure_log=tuple(
            _failure(f) for f in _records(d.get("extraction_failure_log"))
        ),
    )


def parse_import_document(payload: Any) -> tuple[list[DesignSpace], str | None]:
    """Validate the envelope, repair every space. Returns (spaces, requested_active_id)."""
    if not isinstance(payload, dict):
        raise ImportValidationError("expected a JSON object.")
    raw_spaces = payload.get("spaces")
    if not isinstance(raw_spaces, list) or not raw_spaces:
        raise ImportValidationError("missing spaces array.")

    spaces: list[DesignSpace] = []
    seen: set[str] = set()
    for record in raw_spaces:
        space = space_from_dict(record)
        if space.id in seen:
            space = replace(space, id=new_id())
        seen.add(space.id)
        spaces.append(space)
    return spaces, _opt_str(payload.get("activeSpaceId"))