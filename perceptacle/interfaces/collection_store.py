"""Abstract base class for the collection persistence provider.

Markers and tips are each stored as one whole JSON-compatible document
(a list of markers, a mapping of target key to tips).  Reads return the full
document and writes replace it; there are no partial updates.  Any durable
key-value store can satisfy this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICollectionStore(ABC):
    """Contract for whole-document collection storage."""

    @abstractmethod
    async def read_collection(self, name: str) -> Any:
        """Return the stored document for *name*.

        A missing collection yields its empty default.  A corrupt or
        unreadable one is reset to the default (and logged) rather than
        raising, so a damaged file never takes the service down.
        """

    @abstractmethod
    async def write_collection(self, name: str, data: Any) -> None:
        """Replace the document for *name*.

        Must not return until the data is durably persisted.
        """
