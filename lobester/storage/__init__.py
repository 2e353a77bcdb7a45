"""Durable local state — versioned JSON collections written atomically."""

from lobester.storage.collection import (
    SCHEMA_VERSION,
    AtomicCollectionStore,
    write_file_atomic,
    write_json_atomic,
)

__all__ = [
    "SCHEMA_VERSION",
    "AtomicCollectionStore",
    "write_file_atomic",
    "write_json_atomic",
]
