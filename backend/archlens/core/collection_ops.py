"""Collection Ops — ordering and patch helpers shared by every canvas collection.

Invariants:
    - Helpers return new tuples; unknown IDs or out-of-range moves return the input unchanged
    - apply_patch never changes id and ignores keys the entity does not declare
    - compact_title is the first line of trimmed text, at most 80 chars, never empty

Design Decisions:
    - Generic over any frozen dataclass with an `id` field (ADR: one reorder/move
      implementation for six collections)
"""

from dataclasses import fields, replace
from typing import TypeVar

from archlens.core.domain_types import COMPACT_TITLE_MAX_CHARS, Direction

T = TypeVar("T")

_FALLBACK_TITLE = "Imported item"


def index_of(items: tuple, item_id: str | None) -> int:
    return next((i for i, item in enumerate(items) if item.id == item_id), -1)


def reorder(items: tuple[T, ...], item_id: str, direction: Direction) -> tuple[T, ...]:
    """Swap an item with its neighbour. No-op at the ends or for unknown IDs."""
    index = index_of(items, item_id)
    target = index - 1 if direction == Direction.UP else index + 1
    if index < 0 or target < 0 or target >= len(items):
        return items
    cloned = list(items)
    cloned[index], cloned[target] = cloned[target], cloned[index]
    return tuple(cloned)


def move_by_id(items: tuple[T, ...], dragged_id: str, target_id: str) -> tuple[T, ...]:
    """Drag-and-drop: remove dragged item and insert it at the target's index."""
    from_index = index_of(items, dragged_id)
    to_index = index_of(items, target_id)
    if from_index < 0 or to_index < 0 or from_index == to_index:
        return items
    cloned = list(items)
    moved = cloned.pop(from_index)
    cloned.insert(to_index, moved)
    return tuple(cloned)


def replace_by_id(items: tuple[T, ...], item_id: str, **changes) -> tuple[T, ...]:
    return tuple(replace(i, **changes) if i.id == item_id else i for i in items)


def remove_by_id(items: tuple[T, ...], item_id: str) -> tuple[T, ...]:
    return tuple(i for i in items if i.id != item_id)


def apply_patch(item: T, patch: dict) -> T:
    """Apply known, non-id fields from a partial update."""
    allowed = {f.name for f in fields(item)} - {"id"}
    changes = {k: v for k, v in patch.items() if k in allowed}
    return replace(item, **changes) if changes else item


def compact_title(text: str) -> str:
    first_line = text.strip().split("\n")[0]
    return first_line[:COMPACT_TITLE_MAX_CHARS] or _FALLBACK_TITLE
