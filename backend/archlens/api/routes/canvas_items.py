"""Canvas Item Routes — constraints, open questions, and references.

Invariants:
    - Create/patch bodies are per type; delete, ordering and linking share one
      path per operation keyed by collection
    - Linking to an unknown decision or item is a no-op, never a 404

Design Decisions:
    - URL collection names map onto AttachableKind here, at the edge; core/ only
      knows AttachableKind
"""

from enum import Enum

from fastapi import APIRouter, Depends

from archlens.core import canvas_attachables as items
from archlens.core.domain_types import AttachableKind
from archlens.core.space_ops import canvas_op
from archlens.core.space_snapshot import space_to_dict
from archlens.schemas.canvas import (
    ConstraintCreate,
    ConstraintPatch,
    LinkBody,
    MoveBody,
    QuestionCreate,
    QuestionPatch,
    ReferenceCreate,
    ReferencePatch,
    ReorderBody,
)
from archlens.api.routes.dependencies import get_store
from archlens.services.space_store import SpaceStore

router = APIRouter(prefix="/api/v1/spaces/{space_id}/canvas", tags=["canvas"])


class ItemCollection(str, Enum):
    CONSTRAINTS = "constraints"
    OPEN_QUESTIONS = "open-questions"
    REFERENCES = "references"


_KINDS = {
    ItemCollection.CONSTRAINTS: AttachableKind.CONSTRAINT,
    ItemCollection.OPEN_QUESTIONS: AttachableKind.QUESTION,
    ItemCollection.REFERENCES: AttachableKind.REFERENCE,
}


def _apply(store: SpaceStore, space_id: str, fn, *args) -> dict:
    return space_to_dict(store.dispatch(space_id, canvas_op(fn, *args)))


# --- Create -------------------------------------------------------------------

@router.post("/constraints")
async def add_constraint(
    space_id: str, body: ConstraintCreate, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.add_constraint, body.description, body.source)


@router.post("/open-questions")
async def add_question(
    space_id: str, body: QuestionCreate, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.add_question, body.question, body.context)


@router.post("/references")
async def add_reference(
    space_id: str, body: ReferenceCreate, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.add_reference, body.type, body.label, body.content)


# --- Patch --------------------------------------------------------------------

@router.patch("/constraints/{item_id}")
async def update_constraint(
    space_id: str, item_id: str, body: ConstraintPatch, store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.update_item, AttachableKind.CONSTRAINT, item_id, body.to_patch(),
    )


@router.patch("/open-questions/{item_id}")
async def update_question(
    space_id: str, item_id: str, body: QuestionPatch, store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.update_item, AttachableKind.QUESTION, item_id, body.to_patch(),
    )


@router.patch("/references/{item_id}")
async def update_reference(
    space_id: str, item_id: str, body: ReferencePatch, store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.update_item, AttachableKind.REFERENCE, item_id, body.to_patch(),
    )


@router.post("/open-questions/{item_id}/toggle-status")
async def toggle_question_status(
    space_id: str, item_id: str, store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.toggle_question_status, item_id)


# --- Shared per collection ----------------------------------------------------

@router.delete("/{collection}/{item_id}")
async def delete_item(
    space_id: str, collection: ItemCollection, item_id: str,
    store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.delete_item, _KINDS[collection], item_id)


@router.post("/{collection}/{item_id}/reorder")
async def reorder_item(
    space_id: str, collection: ItemCollection, item_id: str, body: ReorderBody,
    store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.reorder_item, _KINDS[collection], item_id, body.direction,
    )


@router.post("/{collection}/{item_id}/move")
async def move_item(
    space_id: str, collection: ItemCollection, item_id: str, body: MoveBody,
    store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.move_item, _KINDS[collection], item_id, body.target_id,
    )


@router.put("/{collection}/{item_id}/link")
async def link_to_decision(
    space_id: str, collection: ItemCollection, item_id: str, body: LinkBody,
    store: SpaceStore = Depends(get_store),
):
    return _apply(
        store, space_id, items.link_to_decision, _KINDS[collection], item_id, body.decision_id,
    )


@router.delete("/{collection}/{item_id}/link")
async def unlink_from_decision(
    space_id: str, collection: ItemCollection, item_id: str,
    store: SpaceStore = Depends(get_store),
):
    return _apply(store, space_id, items.unlink_from_decision, _KINDS[collection], item_id)
