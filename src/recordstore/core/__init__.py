"""
Core abstractions for the record store engine.

Contains models, the line codec, the record collection, the snapshot
store interface, exceptions and logging utilities.
"""

from .models import (
    Record, Snapshot, SnapshotInfo, Operation, OperationResult, SyncResult
)
from .codec import decode, encode, decode_upload, validate_field
from .collection import RecordCollection
from .snapshot_store import SnapshotStore
from .exceptions import (
    RecordStoreError,
    FormatError,
    DuplicateKeyError,
    NotFoundError,
    BackendError,
)

__all__ = [
    # Models
    "Record",
    "Snapshot",
    "SnapshotInfo",
    "Operation",
    "OperationResult",
    "SyncResult",
    # Codec
    "decode",
    "encode",
    "decode_upload",
    "validate_field",
    # Collection / store
    "RecordCollection",
    "SnapshotStore",
    # Exceptions
    "RecordStoreError",
    "FormatError",
    "DuplicateKeyError",
    "NotFoundError",
    "BackendError",
]
