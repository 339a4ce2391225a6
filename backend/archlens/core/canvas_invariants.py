"""Canvas Invariants — referential-integrity rules shared by merge and manual edits.

Invariants:
    - Every option_id / decision_id either resolves inside the same canvas or is None
    - active_option_id is None or names an existing considering/selected option
    - Deleting an option clears option_id on its decisions (decisions survive)
    - Deleting a decision clears decision_id on constraints, questions, references
    - All functions are pure: they return a new canvas and never reorder collections

Design Decisions:
    - Cascades live here, not in callers, so the extract path and the manual path
      cannot drift apart (ADR: one implementation per invariant)
    - enforce_canvas_invariants is idempotent and returns the SAME object when nothing
      needed repair, letting the store skip no-op rebuilds
"""

from dataclasses import replace

from archlens.core.design_space import DesignCanvas, Option
from archlens.core.domain_types import ACTIVE_ELIGIBLE_STATUSES


# --- Active branch ------------------------------------------------------------

def is_active_eligible(option: Option | None) -> bool:
    return option is not None and option.status in ACTIVE_ELIGIBLE_STATUSES


def derive_active_option_id(
    active_option_id: str | None, options: tuple[Option, ...],
) -> str | None:
    """Keep the current active branch if still eligible, else first eligible, else None."""
    current = next((o for o in options if o.id == active_option_id), None)
    if is_active_eligible(current):
        return active_option_id
    fallback = next((o for o in options if is_active_eligible(o)), None)
    return fallback.id if fallback else None


def with_derived_active(canvas: DesignCanvas) -> DesignCanvas:
    derived = derive_active_option_id(canvas.active_option_id, canvas.options)
    if derived == canvas.active_option_id:
        return canvas
    return replace(canvas, active_option_id=derived)


# --- Reference repair ---------------------------------------------------------

def repair_references(canvas: DesignCanvas) -> DesignCanvas:
    """Clear every option_id / decision_id that does not resolve."""
    option_ids = {o.id for o in canvas.options}
    decision_ids = {d.id for d in canvas.decisions}
    changes: dict = {}

    if any(d.option_id and d.option_id not in option_ids for d in canvas.decisions):
        changes["decisions"] = tuple(
            replace(d, option_id=None)
            if d.option_id and d.option_id not in option_ids else d
            for d in canvas.decisions
        )
    for name in ("constraints", "open_questions", "references"):
        items = getattr(canvas, name)
        if any(i.decision_id and i.decision_id not in decision_ids for i in items):
            changes[name] = _unlinked(items, decision_ids)

    return replace(canvas, **changes) if changes else canvas


def enforce_canvas_invariants(canvas: DesignCanvas) -> DesignCanvas:
    """Boundary check run after every transition. Idempotent."""
    return with_derived_active(repair_references(canvas))


# --- Cascading deletes --------------------------------------------------------

def remove_option(canvas: DesignCanvas, option_id: str) -> DesignCanvas:
    """Delete an option; its decisions lose option_id; active re-derived."""
    if canvas.find_option(option_id) is None:
        return canvas
    options = tuple(o for o in canvas.options if o.id != option_id)
    decisions = tuple(
        replace(d, option_id=None) if d.option_id == option_id else d
        for d in canvas.decisions
    )
    active = None if canvas.active_option_id == option_id else canvas.active_option_id
    return replace(
        canvas,
        options=options,
        decisions=decisions,
        active_option_id=derive_active_option_id(active, options),
    )


def remove_decision(canvas: DesignCanvas, decision_id: str) -> DesignCanvas:
    """Delete a decision; attachables pointing at it become unlinked."""
    if canvas.find_decision(decision_id) is None:
        return canvas
    decisions = tuple(d for d in canvas.decisions if d.id != decision_id)
    remaining = {d.id for d in decisions}
    return replace(
        canvas,
        decisions=decisions,
        constraints=_unlinked(canvas.constraints, remaining),
        open_questions=_unlinked(canvas.open_questions, remaining),
        references=_unlinked(canvas.references, remaining),
    )


def _unlinked(items: tuple, valid_decision_ids: set[str]) -> tuple:
    """Clear decision_id on items whose decision is not in valid_decision_ids."""
    return tuple(
        replace(i, decision_id=None)
        if i.decision_id and i.decision_id not in valid_decision_ids else i
        for i in items
    )


# --- Attachment + text helpers ------------------------------------------------

def attachment_target(canvas: DesignCanvas) -> str | None:
    """Decision new constraints/questions/references hang off.

    Most recent decision under the active option, else most recent decision
    overall, else None (unlinked).
    """
    if not canvas.decisions:
        return None
    if canvas.active_option_id:
        for decision in reversed(canvas.decisions):
            if decision.option_id == canvas.active_option_id:
                return decision.id
    return canvas.decisions[-1].id


def append_text(existing: str, addition: str | None) -> str:
    """Newline-join a refinement onto existing text (append, never replace)."""
    addition = (addition or "").strip()
    if not addition:
        return existing
    return f"{existing}\n{addition}" if existing else addition
