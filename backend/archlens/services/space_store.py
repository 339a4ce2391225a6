"""Space Store — authoritative in-memory holder of all design spaces.

Invariants:
    - Always holds at least one space; active_space_id always names a held space
    - dispatch is the only write path for a space: snapshot → operation → validate → replace
    - A transition either commits completely or not at all (operations are pure functions
      over frozen values, so an exception leaves the previous snapshot in place)
    - Every committed transition stamps updated_at and passes enforce_canvas_invariants
    - Spaces are ordered newest first; creation prepends

Design Decisions:
    - In-memory dict, one process (ADR: no server-side durable storage; export/import
      documents are the persistence mechanism)
    - No locks: single writer per space by construction (one request in flight per space,
      operations are synchronous so no await can interleave inside a transition)
    - An operation that returns the same object is a no-op and does not bump updated_at
"""

import logging
from dataclasses import replace

from archlens.core.canvas_invariants import enforce_canvas_invariants
from archlens.core.design_space import DesignSpace, create_space, now_iso
from archlens.core.errors import ErrorContext, ResourceNotFoundError
from archlens.core.sample_space import sample_space
from archlens.core.space_ops import SpaceOperation, rename_space
from archlens.core.space_snapshot import build_export_document, parse_import_document

logger = logging.getLogger(__name__)


class SpaceStore:
    """Holds the latest snapshot of every space and applies operations serially."""

    def __init__(self, spaces: list[DesignSpace] | None = None, active_space_id: str | None = None):
        self._spaces: dict[str, DesignSpace] = {}
        self._active_space_id = ""
        self.replace_spaces(spaces or [], active_space_id)

    # --- Reads ----------------------------------------------------------------

    @property
    def active_space_id(self) -> str:
        return self._active_space_id

    def list_spaces(self) -> list[DesignSpace]:
        return list(self._spaces.values())

    def get(self, space_id: str) -> DesignSpace:
        space = self._spaces.get(space_id)
        if space is None:
            raise ResourceNotFoundError(
                "DesignSpace", space_id, ErrorContext(space_id=space_id),
            )
        return space

    def __contains__(self, space_id: object) -> bool:
        return space_id in self._spaces

    def __len__(self) -> int:
        return len(self._spaces)

    # --- Transitions ----------------------------------------------------------

    def dispatch(self, space_id: str, operation: SpaceOperation) -> DesignSpace:
        """Apply one operation atomically and return the committed snapshot."""
        current = self.get(space_id)
        proposed = operation(current)
        if proposed is current:
            return current
        committed = replace(
            proposed,
            id=current.id,
            design_canvas=enforce_canvas_invariants(proposed.design_canvas),
            updated_at=now_iso(),
        )
        self._spaces[space_id] = committed
        logger.debug(
            "Committed transition via %s",
            getattr(operation, "__name__", type(operation).__name__),
            extra={"space_id": space_id},
        )
        return committed

    # --- Space CRUD -----------------------------------------------------------

    def create_space(self, title: str | None = None) -> DesignSpace:
        return self._prepend(create_space(title))

    def create_sample_space(self) -> DesignSpace:
        return self._prepend(sample_space())

    def delete_space(self, space_id: str) -> None:
        """Remove a space; the store falls back to a fresh one when emptied."""
        self.get(space_id)
        del self._spaces[space_id]
        if not self._spaces:
            self._prepend(create_space())
            return
        if self._active_space_id == space_id:
            self._active_space_id = next(iter(self._spaces))

    def rename_space(self, space_id: str, title: str) -> DesignSpace:
        return self.dispatch(space_id, lambda s: rename_space(s, title))

    def set_active_space(self, space_id: str) -> None:
        self.get(space_id)
        self._active_space_id = space_id

    def _prepend(self, space: DesignSpace) -> DesignSpace:
        self._spaces = {space.id: space, **self._spaces}
        self._active_space_id = space.id
        return space

    # --- Bulk replace / import / export ---------------------------------------

    def replace_spaces(self, spaces: list[DesignSpace], active_space_id: str | None = None) -> None:
        safe = spaces or [create_space()]
        self._spaces = {
            s.id: replace(s, design_canvas=enforce_canvas_invariants(s.design_canvas))
            for s in safe
        }
        self._active_space_id = (
            active_space_id if active_space_id in self._spaces else next(iter(self._spaces))
        )

    def export_document(self) -> dict:
        return build_export_document(self.list_spaces(), self._active_space_id)

    def import_document(self, payload: object) -> list[DesignSpace]:
        """Replace every space with the imported ones. Envelope errors raise."""
        spaces, active_id = parse_import_document(payload)
        self.replace_spaces(spaces, active_id)
        logger.info("Imported %d space(s)", len(spaces))
        return self.list_spaces()
