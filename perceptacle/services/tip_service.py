"""Tip (annotation) service: visibility, CRUD and publishing.

Tips are stored in the ``tips`` collection as ``{target_key: [tip, ...]}``.
Every operation resolves the target key first and rejects a request with no
usable target, or without its required fields, before reading storage.

Visibility
----------
A published tip is visible to everyone.  A draft is visible only to the
viewer whose id matches the tip's ``userId``.  There is no way back from
published to draft.

Addressing
----------
Mutations accept a tip ``id`` (preferred) or a positional ``index`` within
the group.  The id is looked up first; if it matches nothing, the index is
used when one was sent.

Read-modify-write is not transactional; two concurrent edits of the same
group can interleave and the later write wins.
"""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import ValidationError

from perceptacle.interfaces.collection_store import ICollectionStore
from perceptacle.models.tip import Tip, TipStatus, TipTarget, now_ms
from perceptacle.services.positions import require_position
from perceptacle.services.tip_keys import migrate_legacy_keys, resolve_key
from perceptacle.utils.errors import ForbiddenError, InvalidInputError, NotFoundError
from perceptacle.utils.logging import get_logger

TIPS_COLLECTION = "tips"

# Distinguishes "photo_url not sent" from "photo_url sent as null".
UNSET: Any = object()


def _load_tip(doc: Any) -> Tip:
    """Validate a stored tip, keeping a missing ``status`` as ``None``."""
    if isinstance(doc, dict):
        doc = {**doc, "status": doc.get("status")}
    return Tip.model_validate(doc)


def filter_visible_tips(tips: Iterable[Tip], viewer_id: str | None) -> list[Tip]:
    """Return the tips *viewer_id* may see, in their original order."""
    visible: list[Tip] = []
    for tip in tips:
        if tip.status is TipStatus.PUBLISHED:
            visible.append(tip)
        elif viewer_id and tip.user_id and tip.user_id == viewer_id and tip.is_draft:
            visible.append(tip)
    return visible


class TipService:
    """Create, read, update, publish and delete tips grouped by target key."""

    def __init__(self, store: ICollectionStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_tips(self, target: TipTarget, viewer_id: str | None = None) -> list[Tip]:
        """Visible tips for *target*; ``[]`` when no target key resolves."""
        key = self._key_or_none(target)
        if key is None:
            return []
        all_tips = await self._read_all()
        return filter_visible_tips(self._parse_group(all_tips.get(key)), viewer_id)

    async def get_tip(self, target: TipTarget, tip_id: str) -> Tip:
        """Return one tip by id, regardless of its status."""
        key = self._require_key(target)
        all_tips = await self._read_all()
        for tip in self._parse_group(all_tips.get(key)):
            if tip.id == tip_id:
                return tip
        raise NotFoundError("Tip not found")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_tip(
        self,
        target: TipTarget,
        text: str | None,
        user_id: str | None = None,
        photo_url: str | None = None,
        status: str | TipStatus | None = None,
    ) -> Tip:
        """Append a new tip to the target's group.

        The tip is a draft only when ``"draft"`` is requested explicitly;
        anything else publishes it.
        """
        key = self._key_or_none(target)
        if key is None or not text:
            raise InvalidInputError("Missing target or text")

        requested = status.value if isinstance(status, TipStatus) else status
        tip = Tip(
            text=str(text),
            user_id=user_id or None,
            photo_url=photo_url or None,
            status=TipStatus.DRAFT if requested == TipStatus.DRAFT.value else TipStatus.PUBLISHED,
        )

        all_tips = await self._read_all()
        group = all_tips.setdefault(key, [])
        group.append(tip.to_document())
        await self._store.write_collection(TIPS_COLLECTION, all_tips)

        self._logger.info(
            "tip_created",
            key=key,
            tip_id=tip.id,
            status=tip.status.value,
            has_photo=tip.photo_url is not None,
        )
        return tip

    async def update_tip(
        self,
        target: TipTarget,
        tip_id: str | None = None,
        index: int | None = None,
        text: str | None = None,
        photo_url: Any = UNSET,
    ) -> Tip:
        """Edit a tip's text and/or photo and refresh its timestamp.

        Pass ``photo_url=None`` to clear the photo; leave it out to keep it.
        """
        key = self._key_or_none(target)
        if key is None or (not text and photo_url is UNSET):
            raise InvalidInputError("Missing key/updates")

        all_tips = await self._read_all()
        group = self._group(all_tips, key)
        position = require_position(group, id=tip_id, index=index, label="Tip")
        tip = self._parse_or_missing(group[position])

        updates: dict[str, Any] = {"timestamp": now_ms()}
        if text:
            updates["text"] = str(text)
        if photo_url is not UNSET:
            updates["photo_url"] = photo_url or None
        updated = tip.model_copy(update=updates)

        group[position] = {**group[position], **updated.to_document()}
        await self._store.write_collection(TIPS_COLLECTION, all_tips)
        self._logger.info("tip_updated", key=key, tip_id=updated.id, fields=sorted(updates))
        return updated

    async def publish_tip(
        self,
        target: TipTarget,
        tip_id: str | None = None,
        index: int | None = None,
        user_id: str | None = None,
    ) -> Tip:
        """Publish a tip.

        Raises ``ForbiddenError`` when the tip has an owner and a different
        non-empty *user_id* is given.  An anonymous publish is allowed.
        """
        key = self._require_key(target)

        all_tips = await self._read_all()
        group = self._group(all_tips, key)
        position = require_position(group, id=tip_id, index=index, label="Tip")
        tip = self._parse_or_missing(group[position])

        if tip.user_id and user_id and tip.user_id != user_id:
            self._logger.warning("tip_publish_forbidden", key=key, tip_id=tip.id)
            raise ForbiddenError("Not your draft")

        published = tip.model_copy(update={"status": TipStatus.PUBLISHED, "timestamp": now_ms()})
        group[position] = {**group[position], **published.to_document()}
        await self._store.write_collection(TIPS_COLLECTION, all_tips)
        self._logger.info(
            "tip_published",
            key=key,
            tip_id=published.id,
            was_draft=tip.is_draft,
        )
        return published

    async def delete_tip(
        self,
        target: TipTarget,
        tip_id: str | None = None,
        index: int | None = None,
    ) -> None:
        """Remove a tip from its group."""
        key = self._key_or_none(target)
        if key is None or (not tip_id and index is None):
            raise InvalidInputError("Missing key/index")

        all_tips = await self._read_all()
        group = self._group(all_tips, key)
        position = require_position(group, id=tip_id, index=index, label="Tip")
        removed = group.pop(position)
        await self._store.write_collection(TIPS_COLLECTION, all_tips)
        self._logger.info(
            "tip_deleted",
            key=key,
            tip_id=removed.get("id") if isinstance(removed, dict) else None,
            position=position,
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def migrate_keys(self) -> bool:
        """Namespace legacy tip keys; writes only when something changed.

        Returns ``True`` if the stored document was rewritten.
        """
        raw = await self._store.read_collection(TIPS_COLLECTION)
        migrated, changed = migrate_legacy_keys(raw)
        if changed:
            await self._store.write_collection(TIPS_COLLECTION, migrated)
            self._logger.info("tip_keys_migrated", group_count=len(migrated))
        return changed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _key_or_none(target: TipTarget) -> str | None:
        return resolve_key(target.key, target.site_id, target.marker_index)

    def _require_key(self, target: TipTarget) -> str:
        key = self._key_or_none(target)
        if key is None:
            raise InvalidInputError("Missing key")
        return key

    async def _read_all(self) -> dict[str, Any]:
        data = await self._store.read_collection(TIPS_COLLECTION)
        if not isinstance(data, dict):
            self._logger.warning("tip_store_not_a_mapping", found=type(data).__name__)
            return {}
        return data

    @staticmethod
    def _group(all_tips: dict[str, Any], key: str) -> list[Any]:
        group = all_tips.get(key)
        return group if isinstance(group, list) else []

    def _parse_group(self, group: Any) -> list[Tip]:
        if not isinstance(group, list):
            return []
        tips: list[Tip] = []
        for doc in group:
            try:
                tips.append(_load_tip(doc))
            except ValidationError as exc:
                self._logger.warning("tip_document_invalid", error=str(exc))
        return tips

    def _parse_or_missing(self, doc: Any) -> Tip:
        try:
            return _load_tip(doc)
        except ValidationError as exc:
            self._logger.warning("tip_document_invalid", error=str(exc))
            raise NotFoundError("Tip not found") from exc
