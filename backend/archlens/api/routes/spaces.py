"""Space Routes — space lifecycle, active selection, outputs, and export/import.

Invariants:
    - Every write goes through SpaceStore (dispatch or a store CRUD method)
    - Responses are plain space_to_dict snapshots, the same shape export uses
    - Unknown space IDs surface as ResourceNotFoundError (404) via the global handler
    - Empty outputs (no design doc, no tasks) are rejected with CanvasValidationError

Design Decisions:
    - /export, /import, /sample and /active are declared before /{space_id} so the
      literal paths win route matching
    - Import takes the raw JSON body: envelope checks live in space_snapshot, not
      in a pydantic model, so a malformed nested field is repaired instead of rejected
"""

import logging
from dataclasses import replace
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from archlens.core.design_space import now_iso
from archlens.core.errors import CanvasValidationError, ErrorContext
from archlens.core.space_ops import set_outputs
from archlens.core.space_snapshot import outputs_from_dict, space_to_dict
from archlens.schemas.space import ActiveSpaceBody, OutputsBody, SpaceCreate, SpaceRename
from archlens.api.routes.dependencies import get_store
from archlens.services.space_store import SpaceStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/spaces", tags=["spaces"])


def _listing(store: SpaceStore) -> dict:
    return {
        "active_space_id": store.active_space_id,
        "spaces": [space_to_dict(s) for s in store.list_spaces()],
    }


@router.get("")
async def list_spaces(store: SpaceStore = Depends(get_store)):
    return _listing(store)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_space(body: SpaceCreate | None = None, store: SpaceStore = Depends(get_store)):
    space = store.create_space(body.title.strip() if body and body.title else None)
    logger.info("Space created", extra={"space_id": space.id})
    return space_to_dict(space)


@router.post("/sample", status_code=status.HTTP_201_CREATED)
async def create_sample_space(store: SpaceStore = Depends(get_store)):
    return space_to_dict(store.create_sample_space())


@router.put("/active")
async def set_active_space(body: ActiveSpaceBody, store: SpaceStore = Depends(get_store)):
    store.set_active_space(body.space_id)
    return {"active_space_id": store.active_space_id}


@router.get("/export")
async def export_spaces(store: SpaceStore = Depends(get_store)):
    """Full export document: {version, exported_at, activeSpaceId, spaces}."""
    return store.export_document()


@router.post("/import")
async def import_spaces(payload: Any = Body(...), store: SpaceStore = Depends(get_store)):
    """Replace every space with the document's. Only a bad envelope is rejected."""
    store.import_document(payload)
    return _listing(store)


@router.get("/{space_id}")
async def get_space(space_id: str, store: SpaceStore = Depends(get_store)):
    return space_to_dict(store.get(space_id))


@router.patch("/{space_id}")
async def rename_space(space_id: str, body: SpaceRename, store: SpaceStore = Depends(get_store)):
    return space_to_dict(store.rename_space(space_id, body.title))


@router.delete("/{space_id}")
async def delete_space(space_id: str, store: SpaceStore = Depends(get_store)):
    store.delete_space(space_id)
    logger.info("Space deleted", extra={"space_id": space_id})
    return _listing(store)


@router.put("/{space_id}/outputs")
async def put_outputs(space_id: str, body: OutputsBody, store: SpaceStore = Depends(get_store)):
    """Store crystallized artifacts; the space becomes crystallized."""
    if not (body.design_doc or "").strip() and not body.tasks:
        raise CanvasValidationError(
            "Outputs need a design document or at least one task",
            "outputs", ErrorContext(space_id=space_id),
        )
    outputs = replace(outputs_from_dict(body.model_dump()), generated_at=now_iso())
    return space_to_dict(store.dispatch(space_id, lambda s: set_outputs(s, outputs)))
