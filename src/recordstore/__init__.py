"""
Record store: keyed records kept in named text snapshots.

Decodes uploaded snapshot text, applies one create/update/patch/delete
mutation, and persists the result through a pluggable snapshot store
(memory, file, SQLite or SQL Server).
"""

from .core import (
    Record,
    Snapshot,
    SnapshotInfo,
    Operation,
    OperationResult,
    SyncResult,
    RecordCollection,
    SnapshotStore,
    RecordStoreError,
    FormatError,
    DuplicateKeyError,
    NotFoundError,
    BackendError,
    decode,
    encode,
)
from .engine import RecordStoreEngine

__version__ = "0.1.0"

__all__ = [
    "Record",
    "Snapshot",
    "SnapshotInfo",
    "Operation",
    "OperationResult",
    "SyncResult",
    "RecordCollection",
    "SnapshotStore",
    "RecordStoreError",
    "FormatError",
    "DuplicateKeyError",
    "NotFoundError",
    "BackendError",
    "decode",
    "encode",
    "RecordStoreEngine",
]
