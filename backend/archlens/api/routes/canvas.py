"""Canvas Routes — manual edits to problem statement, branches (options), and decisions.

Invariants:
    - Each endpoint is exactly one store dispatch of one canvas operation
    - Referential misses (unknown option/decision ID) are no-ops, not 404s; only an
      unknown space is an error
    - Every response is the committed space snapshot

Design Decisions:
    - Routes stay thin: canvas_op lifts a pure (canvas, ...) -> canvas function into a
      space operation (ADR: impureim sandwich)
    - Constraint/question/reference endpoints live in canvas_items.py (ExMA fan-out)
"""

from fastapi import APIRouter, Depends

from archlens.core import canvas_ops
from archlens.core.space_ops import canvas_op
from archlens.core.space_snapshot import space_to_dict
from archlens.schemas.canvas import (
    ActiveOptionBody,
    DecisionAppendBody,
    DecisionCreate,
    DecisionPatch,
    DropTextBody,
    MoveBody,
    OptionCreate,
    OptionPatch,
    ProblemStatementBody,
    ReasonBody,
    ReorderBody,
    TodosBody,
)
from archlens.api.routes.dependencies import get_store
from archlens.services.space_store import SpaceStore

router = APIRouter(prefix="/api/v1/spaces/{space_id}/canvas", tags=["canvas"])


def _apply(store: SpaceStore, space_id: str, fn, *args) -> dict:
    return space_to_dict(store.dispatch(space_id, canvas_op(fn, *args)))


# --- Canvas-level -------------------------------------------------------------

@router.put("/problem-statement")
async def set_problem_statement(
    space_id: str, body: ProblemStatementBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.set_problem_statement, body.problem_statement)


@router.put("/active-option")
async def set_active_option(
    space_id: str, body: ActiveOptionBody, store: SpaceStore = Depends(get_store),
):
    """Focus a branch, or clear focus with option_id=null."""
    if body.option_id is None:
        return _apply(store, space_id, canvas_ops.clear_active_option)
    return _apply(store, space_id, canvas_ops.set_active_option, body.option_id)


@router.post("/drop")
async def drop_text(space_id: str, body: DropTextBody, store: SpaceStore = Depends(get_store)):
    """Text dragged from the conversation onto a canvas section."""
    return _apply(
        store, space_id, canvas_ops.drop_text, body.section, body.text, body.source_message_id,
    )


# --- Options ------------------------------------------------------------------

@router.post("/options")
async def add_option(space_id: str, body: OptionCreate, store: SpaceStore = Depends(get_store)):
    return _apply(store, space_id, canvas_ops.add_option, body.title, body.description)


@router.patch("/options/{option_id}")
async def update_option(
    space_id: str, option_id: str, body: OptionPatch, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.update_option, option_id, body.to_patch())


@router.delete("/options/{option_id}")
async def delete_option(space_id: str, option_id: str, store: SpaceStore = Depends(get_store)):
    return _apply(store, space_id, canvas_ops.delete_option, option_id)


@router.post("/options/{option_id}/reorder")
async def reorder_option(
    space_id: str, option_id: str, body: ReorderBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.reorder_option, option_id, body.direction)


@router.post("/options/{option_id}/move")
async def move_option(
    space_id: str, option_id: str, body: MoveBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.move_option, option_id, body.target_id)


@router.post("/options/{option_id}/cycle-status")
async def cycle_option_status(
    space_id: str, option_id: str, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.cycle_option_status, option_id)


@router.post("/options/{option_id}/reject")
async def reject_option(
    space_id: str, option_id: str, body: ReasonBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.reject_option, option_id, body.reason)


@router.post("/options/{option_id}/finish")
async def finish_option(
    space_id: str, option_id: str, body: ReasonBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.finish_option, option_id, body.reason)


@router.put("/options/{option_id}/todos")
async def set_option_todos(
    space_id: str, option_id: str, body: TodosBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.set_option_todos, option_id, body.todos)


@router.post("/options/{option_id}/promote")
async def promote_to_decision(
    space_id: str, option_id: str, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.promote_to_decision, option_id)


# --- Decisions ----------------------------------------------------------------

@router.post("/decisions")
async def add_decision(
    space_id: str, body: DecisionCreate, store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, canvas_ops.add_decision, body.title, body.reasoning, body.trade_offs,
    )


@router.patch("/decisions/{decision_id}")
async def update_decision(
    space_id: str, decision_id: str, body: DecisionPatch, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.update_decision, decision_id, body.to_patch())


@router.delete("/decisions/{decision_id}")
async def delete_decision(
    space_id: str, decision_id: str, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.delete_decision, decision_id)


@router.post("/decisions/{decision_id}/reorder")
async def reorder_decision(
    space_id: str, decision_id: str, body: ReorderBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.reorder_decision, decision_id, body.direction)


@router.post("/decisions/{decision_id}/move")
async def move_decision(
    space_id: str, decision_id: str, body: MoveBody, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, canvas_ops.move_decision, decision_id, body.target_id)


@router.post("/decisions/{decision_id}/reopen")
async def reopen_decision(
    space_id: str, decision_id: str, store: SpaceStore = Depends(get_store),
):
    """Turn the decision back into a considering branch and focus it."""
    return _apply(store, space_id, canvas_ops.reopen_decision, decision_id)


@router.post("/decisions/{decision_id}/append")
async def append_decision_text(
    space_id: str, decision_id: str, body: DecisionAppendBody,
    store: SpaceStore = Depends(get_store),
):
    """Append refinements to reasoning/trade-offs; earlier text is kept."""
    return _apply(
        store, space_id, canvas_ops.append_decision_text,
        decision_id, body.reasoning, body.trade_offs,
    )
