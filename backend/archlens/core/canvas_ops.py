"""Canvas Ops — manual edits to options, decisions, and the problem statement.

Invariants:
    - Every function is (canvas, ...) → canvas; the input snapshot is never mutated
    - Unknown IDs are a no-op (same canvas returned), never an exception
    - A patched option_id that does not resolve is dropped, never stored dangling
    - active_option_id is re-derived after any edit that can change branch eligibility
    - New items are appended; only reorder_* / move_* change collection order

Design Decisions:
    - Same cascade helpers as the merge engine (canvas_invariants) so the manual path and
      the extract path produce identical state (ADR: one implementation per invariant)
    - Status cycle skips "finished": finished branches drop back to considering
"""

from dataclasses import replace

from archlens.core.canvas_invariants import (
    append_text,
    is_active_eligible,
    remove_decision,
    remove_option,
    with_derived_active,
)
from archlens.core.canvas_attachables import add_constraint, add_question, add_reference
from archlens.core.collection_ops import (
    apply_patch,
    compact_title,
    move_by_id,
    reorder,
    replace_by_id,
)
from archlens.core.design_space import Decision, DesignCanvas, Option, new_id
from archlens.core.domain_types import (
    DEFAULT_BRANCH_SCORE,
    CanvasSection,
    ConstraintSource,
    Direction,
    OptionStatus,
    ReferenceType,
)

_STATUS_CYCLE = {
    OptionStatus.CONSIDERING: OptionStatus.SELECTED,
    OptionStatus.SELECTED: OptionStatus.REJECTED,
}


def next_status(status: OptionStatus) -> OptionStatus:
    """considering → selected → rejected → considering; finished → considering."""
    return _STATUS_CYCLE.get(status, OptionStatus.CONSIDERING)


def _sources(source_message_id: str | None) -> tuple[str, ...]:
    return (source_message_id,) if source_message_id else ()


# --- Problem statement + active branch ----------------------------------------

def set_problem_statement(canvas: DesignCanvas, text: str) -> DesignCanvas:
    return replace(canvas, problem_statement=text)


def set_active_option(canvas: DesignCanvas, option_id: str) -> DesignCanvas:
    """Focus a branch. Rejected/finished or unknown options are not eligible."""
    if not is_active_eligible(canvas.find_option(option_id)):
        return canvas
    return replace(canvas, active_option_id=option_id)


def clear_active_option(canvas: DesignCanvas) -> DesignCanvas:
    return replace(canvas, active_option_id=None)


# --- Options ------------------------------------------------------------------

def add_option(
    canvas: DesignCanvas,
    title: str = "New option",
    description: str = "",
    source_message_id: str | None = None,
) -> DesignCanvas:
    option = Option(
        id=new_id(),
        title=title,
        description=description,
        status=OptionStatus.CONSIDERING,
        branch_score=DEFAULT_BRANCH_SCORE,
        source_messages=_sources(source_message_id),
    )
    return with_derived_active(replace(canvas, options=(*canvas.options, option)))


def update_option(canvas: DesignCanvas, option_id: str, patch: dict) -> DesignCanvas:
    option = canvas.find_option(option_id)
    if option is None:
        return canvas
    updated = apply_patch(option, patch)
    options = tuple(updated if o.id == option_id else o for o in canvas.options)
    active = canvas.active_option_id
    if updated.status == OptionStatus.SELECTED and option.status != OptionStatus.SELECTED:
        active = option_id
    return with_derived_active(replace(canvas, options=options, active_option_id=active))


def delete_option(canvas: DesignCanvas, option_id: str) -> DesignCanvas:
    return remove_option(canvas, option_id)


def reorder_option(canvas: DesignCanvas, option_id: str, direction: Direction) -> DesignCanvas:
    return replace(canvas, options=reorder(canvas.options, option_id, direction))


def move_option(canvas: DesignCanvas, dragged_id: str, target_id: str) -> DesignCanvas:
    return replace(canvas, options=move_by_id(canvas.options, dragged_id, target_id))


def cycle_option_status(canvas: DesignCanvas, option_id: str) -> DesignCanvas:
    option = canvas.find_option(option_id)
    if option is None:
        return canvas
    return _set_status(canvas, option, next_status(option.status))


def reject_option(
    canvas: DesignCanvas, option_id: str, reason: str | None = None,
) -> DesignCanvas:
    option = canvas.find_option(option_id)
    if option is None:
        return canvas
    return _set_status(
        canvas, option, OptionStatus.REJECTED,
        rejection_reason=(reason or "").strip() or option.rejection_reason,
    )


def finish_option(
    canvas: DesignCanvas, option_id: str, reason: str | None = None,
) -> DesignCanvas:
    option = canvas.find_option(option_id)
    if option is None:
        return canvas
    return _set_status(
        canvas, option, OptionStatus.FINISHED,
        finish_reason=(reason or "").strip() or option.finish_reason,
    )


def set_option_todos(canvas: DesignCanvas, option_id: str, todos: str) -> DesignCanvas:
    """Full replacement of the branch checklist."""
    if canvas.find_option(option_id) is None:
        return canvas
    return replace(
        canvas, options=replace_by_id(canvas.options, option_id, todos=todos.strip()),
    )


def promote_to_decision(canvas: DesignCanvas, option_id: str) -> DesignCanvas:
    """Select the branch, focus it, and record a decision made under it."""
    option = canvas.find_option(option_id)
    if option is None:
        return canvas
    decision = Decision(
        id=new_id(),
        title=option.title or "New decision",
        reasoning=option.description,
        option_id=option_id,
    )
    return replace(
        canvas,
        options=replace_by_id(canvas.options, option_id, status=OptionStatus.SELECTED),
        active_option_id=option_id,
        decisions=(*canvas.decisions, decision),
    )


def _set_status(canvas: DesignCanvas, option: Option, status: OptionStatus, **extra) -> DesignCanvas:
    options = replace_by_id(canvas.options, option.id, status=status, **extra)
    active = option.id if status == OptionStatus.SELECTED else canvas.active_option_id
    return with_derived_active(replace(canvas, options=options, active_option_id=active))


# --- Decisions ----------------------------------------------------------------

def add_decision(
    canvas: DesignCanvas,
    title: str = "New decision",
    reasoning: str = "",
    trade_offs: str = "",
    source_message_id: str | None = None,
) -> DesignCanvas:
    """New decision under the active branch (unlinked when none is active)."""
    decision = Decision(
        id=new_id(),
        title=title,
        reasoning=reasoning,
        trade_offs=trade_offs,
        option_id=canvas.active_option_id,
        source_messages=_sources(source_message_id),
    )
    return replace(canvas, decisions=(*canvas.decisions, decision))


def update_decision(canvas: DesignCanvas, decision_id: str, patch: dict) -> DesignCanvas:
    decision = canvas.find_decision(decision_id)
    if decision is None:
        return canvas
    patch = dict(patch)
    if patch.get("option_id") and canvas.find_option(patch["option_id"]) is None:
        patch.pop("option_id")
    updated = apply_patch(decision, patch)
    return replace(
        canvas,
        decisions=tuple(updated if d.id == decision_id else d for d in canvas.decisions),
    )


def append_decision_text(
    canvas: DesignCanvas,
    decision_id: str,
    reasoning: str | None = None,
    trade_offs: str | None = None,
) -> DesignCanvas:
    """Refine a decision without losing earlier reasoning."""
    decision = canvas.find_decision(decision_id)
    if decision is None:
        return canvas
    return replace(canvas, decisions=replace_by_id(
        canvas.decisions, decision_id,
        reasoning=append_text(decision.reasoning, reasoning),
        trade_offs=append_text(decision.trade_offs, trade_offs),
    ))


def delete_decision(canvas: DesignCanvas, decision_id: str) -> DesignCanvas:
    return remove_decision(canvas, decision_id)


def reorder_decision(canvas: DesignCanvas, decision_id: str, direction: Direction) -> DesignCanvas:
    return replace(canvas, decisions=reorder(canvas.decisions, decision_id, direction))


def move_decision(canvas: DesignCanvas, dragged_id: str, target_id: str) -> DesignCanvas:
    return replace(canvas, decisions=move_by_id(canvas.decisions, dragged_id, target_id))


def reopen_decision(canvas: DesignCanvas, decision_id: str) -> DesignCanvas:
    """Turn a settled decision back into a considering branch and focus it."""
    decision = canvas.find_decision(decision_id)
    if decision is None:
        return canvas
    option = Option(
        id=new_id(),
        title=decision.title,
        description=decision.reasoning,
        status=OptionStatus.CONSIDERING,
        branch_score=DEFAULT_BRANCH_SCORE,
        source_messages=decision.source_messages,
    )
    reopened = remove_decision(canvas, decision_id)
    return replace(
        reopened,
        options=(*reopened.options, option),
        active_option_id=option.id,
    )


# --- Drag text onto the canvas ------------------------------------------------

def drop_text(
    canvas: DesignCanvas,
    section: CanvasSection,
    text: str,
    source_message_id: str | None = None,
) -> DesignCanvas:
    """Create an item from text dragged out of the conversation."""
    dropped = (text or "").strip()
    if not dropped:
        return canvas
    title = compact_title(dropped)

    match section:
        case CanvasSection.PROBLEM_STATEMENT:
            return replace(
                canvas, problem_statement=append_text(canvas.problem_statement, dropped),
            )
        case CanvasSection.OPTIONS:
            return add_option(canvas, title, dropped, source_message_id)
        case CanvasSection.DECISIONS:
            return add_decision(canvas, title, dropped, "", source_message_id)
        case CanvasSection.CONSTRAINTS:
            return add_constraint(
                canvas, dropped, ConstraintSource.CONVERSATION, source_message_id,
            )
        case CanvasSection.OPEN_QUESTIONS:
            return add_question(canvas, title, dropped)
        case _:
            return add_reference(canvas, ReferenceType.PASTE, title, dropped)
