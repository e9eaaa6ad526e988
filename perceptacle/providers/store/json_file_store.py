"""JSON-file collection store.

Each collection is one pretty-printed JSON document, ``<data_dir>/<name>.json``:

    markers.json   [ {marker}, ... ]
    tips.json      { "usgs:07055660": [ {tip}, ... ], ... }

Writes go to a temporary file in the same directory, are fsync'd, then
``os.replace``'d over the target, so a crash never leaves a half-written
document.  File I/O runs in a worker thread via ``asyncio.to_thread``.
Each collection has its own ``asyncio.Lock``; writers to one collection are
serialized, but read-modify-write sequences in the services are not.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from perceptacle.interfaces.collection_store import ICollectionStore
from perceptacle.utils.logging import get_logger

DEFAULT_COLLECTIONS: dict[str, Any] = {
    "markers": [],
    "tips": {},
}


class JSONFileStore(ICollectionStore):
    """Whole-document persistence in a directory of JSON files.

    Parameters
    ----------
    data_dir:
        Directory holding the ``.json`` files; created on :meth:`initialize`.
    defaults:
        Empty value per collection name.  Unknown collections default to
        ``{}``.
    """

    def __init__(
        self,
        data_dir: str | Path,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._defaults = dict(DEFAULT_COLLECTIONS if defaults is None else defaults)
        self._locks: dict[str, asyncio.Lock] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create the data directory and any missing collection files.

        Called once during app startup.
        """
        self._data_dir.mkdir(parents=True, exist_ok=True)
        for name in self._defaults:
            path = self._path(name)
            if not path.exists():
                self._write_sync(path, self._default(name))
                self._logger.info("collection_created", collection=name, path=str(path))

    # ------------------------------------------------------------------
    # ICollectionStore implementation
    # ------------------------------------------------------------------

    async def read_collection(self, name: str) -> Any:
        async with self._lock(name):
            return await asyncio.to_thread(self._read_sync, name)

    async def write_collection(self, name: str, data: Any) -> None:
        async with self._lock(name):
            await asyncio.to_thread(self._write_sync, self._path(name), data)
        self._logger.debug("collection_written", collection=name)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _lock(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    def _path(self, name: str) -> Path:
        return self._data_dir / f"{name}.json"

    def _default(self, name: str) -> Any:
        return copy.deepcopy(self._defaults.get(name, {}))

    def _read_sync(self, name: str) -> Any:
        path = self._path(name)
        if not path.exists():
            default = self._default(name)
            self._write_sync(path, default)
            return default

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            # Self-heal: a corrupt document is replaced by the empty default.
            self._logger.warning(
                "collection_corrupt_reset",
                collection=name,
                path=str(path),
                error=str(exc),
            )
            default = self._default(name)
            try:
                self._write_sync(path, default)
            except OSError as write_exc:
                self._logger.error(
                    "collection_reset_failed",
                    collection=name,
                    error=str(write_exc),
                )
            return default

    def _write_sync(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
