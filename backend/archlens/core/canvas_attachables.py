"""Canvas Attachables — constraints, open questions, and references.

These three collections share one shape of behaviour: each item may hang off a
decision (decision_id) or float unlinked, and new items attach to the implicit
target chosen by canvas_invariants.attachment_target.

Invariants:
    - Linking re-validates both ends first; a missing item or decision is a no-op
    - A patched decision_id that does not resolve is dropped, never stored dangling
    - Deleting an attachable never touches other collections
    - Unknown IDs return the canvas unchanged

Design Decisions:
    - Dispatch on AttachableKind over three copies of every operation
      (ADR: constraint/question/reference ops were identical modulo field names)
"""

from dataclasses import replace

from archlens.core.canvas_invariants import attachment_target
from archlens.core.collection_ops import (
    apply_patch,
    index_of,
    move_by_id,
    remove_by_id,
    reorder,
    replace_by_id,
)
from archlens.core.design_space import (
    Constraint,
    DesignCanvas,
    OpenQuestion,
    Reference,
    new_id,
)
from archlens.core.domain_types import (
    AttachableKind,
    ConstraintSource,
    Direction,
    QuestionStatus,
    ReferenceType,
)

_COLLECTIONS = {
    AttachableKind.CONSTRAINT: "constraints",
    AttachableKind.QUESTION: "open_questions",
    AttachableKind.REFERENCE: "references",
}


def _items(canvas: DesignCanvas, kind: AttachableKind) -> tuple:
    return getattr(canvas, _COLLECTIONS[kind])


def _with_items(canvas: DesignCanvas, kind: AttachableKind, items: tuple) -> DesignCanvas:
    return replace(canvas, **{_COLLECTIONS[kind]: items})


# --- Create -------------------------------------------------------------------

def add_constraint(
    canvas: DesignCanvas,
    description: str = "New constraint",
    source: ConstraintSource = ConstraintSource.CONVERSATION,
    source_message_id: str | None = None,
) -> DesignCanvas:
    constraint = Constraint(
        id=new_id(),
        description=description,
        source=source,
        decision_id=attachment_target(canvas),
        source_messages=(source_message_id,) if source_message_id else (),
    )
    return replace(canvas, constraints=(*canvas.constraints, constraint))


def add_question(
    canvas: DesignCanvas, question: str = "New question", context: str = "",
) -> DesignCanvas:
    item = OpenQuestion(
        id=new_id(),
        question=question,
        context=context,
        status=QuestionStatus.OPEN,
        decision_id=attachment_target(canvas),
    )
    return replace(canvas, open_questions=(*canvas.open_questions, item))


def add_reference(
    canvas: DesignCanvas,
    type: ReferenceType,
    label: str,
    content: str = "",
) -> DesignCanvas:
    """Pasted material is kept as given: references are never deduplicated."""
    reference = Reference(
        id=new_id(),
        type=type,
        label=label,
        content=content,
        decision_id=attachment_target(canvas),
    )
    return replace(canvas, references=(*canvas.references, reference))


# --- Edit / delete / order ----------------------------------------------------

def update_item(
    canvas: DesignCanvas, kind: AttachableKind, item_id: str, patch: dict,
) -> DesignCanvas:
    items = _items(canvas, kind)
    index = index_of(items, item_id)
    if index < 0:
        return canvas
    patch = dict(patch)
    if patch.get("decision_id") and canvas.find_decision(patch["decision_id"]) is None:
        patch.pop("decision_id")
    updated = apply_patch(items[index], patch)
    return _with_items(canvas, kind, (*items[:index], updated, *items[index + 1:]))


def delete_item(canvas: DesignCanvas, kind: AttachableKind, item_id: str) -> DesignCanvas:
    return _with_items(canvas, kind, remove_by_id(_items(canvas, kind), item_id))


def reorder_item(
    canvas: DesignCanvas, kind: AttachableKind, item_id: str, direction: Direction,
) -> DesignCanvas:
    return _with_items(canvas, kind, reorder(_items(canvas, kind), item_id, direction))


def move_item(
    canvas: DesignCanvas, kind: AttachableKind, dragged_id: str, target_id: str,
) -> DesignCanvas:
    return _with_items(
        canvas, kind, move_by_id(_items(canvas, kind), dragged_id, target_id),
    )


# --- Links --------------------------------------------------------------------

def link_to_decision(
    canvas: DesignCanvas, kind: AttachableKind, item_id: str, decision_id: str,
) -> DesignCanvas:
    """Attach an item to a decision. No-op if either end no longer exists."""
    items = _items(canvas, kind)
    if index_of(items, item_id) < 0 or canvas.find_decision(decision_id) is None:
        return canvas
    return _with_items(canvas, kind, replace_by_id(items, item_id, decision_id=decision_id))


def unlink_from_decision(
    canvas: DesignCanvas, kind: AttachableKind, item_id: str,
) -> DesignCanvas:
    items = _items(canvas, kind)
    if index_of(items, item_id) < 0:
        return canvas
    return _with_items(canvas, kind, replace_by_id(items, item_id, decision_id=None))


def toggle_question_status(canvas: DesignCanvas, question_id: str) -> DesignCanvas:
    question = next((q for q in canvas.open_questions if q.id == question_id), None)
    if question is None:
        return canvas
    status = (
        QuestionStatus.RESOLVED if question.status == QuestionStatus.OPEN
        else QuestionStatus.OPEN
    )
    return replace(
        canvas,
        open_questions=replace_by_id(canvas.open_questions, question_id, status=status),
    )
