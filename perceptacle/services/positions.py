"""Resolve which item in an ordered collection a request refers to.

Tips and markers live in insertion-ordered lists.  Clients name an item by
its ``id`` (stable) or by its position (legacy, shifts when an earlier item
is deleted).  The id is tried first; when it matches nothing, a supplied
index is used instead.
"""

from __future__ import annotations

from typing import Any, Sequence

from perceptacle.utils.errors import NotFoundError


def _item_id(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("id")
    return getattr(item, "id", None)


def resolve_position(
    items: Sequence[Any],
    id: str | None = None,
    index: int | None = None,
) -> int | None:
    """Return the position *id* or *index* refers to, or ``None``.

    *index* is returned unchecked; callers bounds-check it against
    ``len(items)`` before use.  Items may be models or plain dicts.
    """
    if id:
        for position, item in enumerate(items):
            if _item_id(item) == id:
                return position
    if index is not None:
        return index
    return None


def is_valid_position(items: Sequence[Any], position: int | None) -> bool:
    """Return ``True`` if *position* addresses an existing item."""
    return position is not None and 0 <= position < len(items)


def require_position(
    items: Sequence[Any],
    id: str | None = None,
    index: int | None = None,
    label: str = "Item",
) -> int:
    """Like :func:`resolve_position`, but raise ``NotFoundError`` on a miss."""
    position = resolve_position(items, id=id, index=index)
    if not is_valid_position(items, position):
        raise NotFoundError(f"{label} not found")
    return position
