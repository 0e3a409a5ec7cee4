"""Record store access for the MPLADS collections."""

from .store import (
    RecordStore,
    InMemoryRecordStore,
    MongoRecordStore,
    build_filter,
    registry_filter,
)

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "MongoRecordStore",
    "build_filter",
    "registry_filter",
]
