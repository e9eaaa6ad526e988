"""Collection store implementations.

JSONFileStore keeps each collection (markers, tips) as one JSON document on
disk. Any durable key-value store implementing ICollectionStore can replace
it.
"""

from perceptacle.providers.store.json_file_store import JSONFileStore

__all__ = ["JSONFileStore"]
