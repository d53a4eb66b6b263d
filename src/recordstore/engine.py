"""
Record store engine.

Each mutation is one load -> edit -> encode -> save cycle against a
snapshot store. There is no locking: two concurrent mutations of the
same snapshot can race and the last save wins. Callers that need strict
ordering must serialize calls per snapshot name.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

from .core.codec import decode, decode_upload, encode, validate_field
from .core.collection import RecordCollection
from .core.exceptions import NotFoundError, RecordStoreError
from .core.models import (
    Operation,
    OperationResult,
    Record,
    Snapshot,
    SnapshotInfo,
    SyncResult,
    utc_now,
)
from .core.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)

RawContent = Union[bytes, str]


class RecordStoreEngine:
    """
    Applies record mutations to named snapshots.

    The engine holds no per-snapshot state between calls. A failed call
    never reaches the store's save(), so stored state is left untouched.

    Example:
        >>> engine = RecordStoreEngine(MemorySnapshotStore())
        >>> engine.sync_snapshot("users.csv", b"id=1,email=a@x.com,name=A\\n")
        >>> engine.create_record("users.csv", 2, "b@x.com", "B")
    """

    def __init__(
        self,
        store: SnapshotStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Snapshot store backend
            clock: Returns the current aware UTC time (default: utc_now)
        """
        self.store = store
        self.clock = clock or utc_now

    # ------------------------------------------------------------------
    # Read / resync
    # ------------------------------------------------------------------

    def sync_snapshot(self, snapshot_name: str, raw: RawContent) -> SyncResult:
        """
        Upload snapshot content and make it the stored state.

        An existing snapshot has its records and raw text replaced by the
        upload, keeping its identity and created_at. An unknown name
        creates a new snapshot.

        Args:
            snapshot_name: Snapshot name (typically the uploaded filename)
            raw: Uploaded content

        Returns:
            SyncResult with the decoded records

        Raises:
            FormatError: If the upload is empty or malformed
            BackendError: If the store fails
        """
        text = decode_upload(raw)
        records = decode(text)

        existing = self.store.load(snapshot_name)
        snapshot = existing or Snapshot(name=snapshot_name)
        snapshot.replace_contents(records, text, self.clock())
        saved = self.store.save(snapshot)

        if existing is None:
            logger.info(
                f"New snapshot saved: {snapshot_name} ({len(records)} records)",
                extra={"snapshot": snapshot_name, "backend": self.store.get_name()},
            )
        else:
            logger.info(
                f"Snapshot already exists, updated: {snapshot_name} ({len(records)} records)",
                extra={"snapshot": snapshot_name, "backend": self.store.get_name()},
            )

        return SyncResult(
            snapshot_name=snapshot_name,
            snapshot_id=saved.snapshot_id,
            records=records,
            created=existing is None,
        )

    def get_records(self, snapshot_name: str) -> List[Record]:
        """Return the stored records of a snapshot."""
        return list(self._require_snapshot(snapshot_name).records)

    def describe(self, snapshot_name: str) -> SnapshotInfo:
        """
        Return identity, name, record count and timestamps of a snapshot.

        Document backends keep created_at fixed from the first save. The
        file backend derives it from the file system, so where no birth
        time is reported it moves with every save.

        Raises:
            NotFoundError: If the snapshot does not exist
        """
        return self._require_snapshot(snapshot_name).to_info()

    def list_snapshots(self) -> List[SnapshotInfo]:
        """Return info for every stored snapshot, newest first."""
        return self.store.list_snapshots()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_record(
        self,
        snapshot_name: str,
        record_id: int,
        email: str,
        name: str,
        raw: Optional[RawContent] = None,
    ) -> OperationResult:
        """
        Add a record to a snapshot.

        Raises:
            DuplicateKeyError: If the id already exists
        """
        validate_field("email", email)
        validate_field("name", name)
        record = Record(id=record_id, email=email, name=name)

        return self._run_cycle(
            snapshot_name,
            raw,
            Operation.CREATE,
            record_id,
            lambda collection: collection.insert(record),
            f"Record with ID {record_id} created successfully in snapshot {snapshot_name}",
        )

    def full_update(
        self,
        snapshot_name: str,
        record_id: int,
        email: str,
        name: str,
        raw: Optional[RawContent] = None,
    ) -> OperationResult:
        """
        Overwrite both email and name of a record.

        Raises:
            NotFoundError: If the id does not exist
        """
        validate_field("email", email)
        validate_field("name", name)

        return self._run_cycle(
            snapshot_name,
            raw,
            Operation.UPDATE,
            record_id,
            lambda collection: collection.replace_fields(record_id, email, name),
            f"Record with ID {record_id} updated successfully in snapshot {snapshot_name}",
        )

    def partial_update(
        self,
        snapshot_name: str,
        record_id: int,
        email: Optional[str] = None,
        name: Optional[str] = None,
        raw: Optional[RawContent] = None,
    ) -> OperationResult:
        """
        Overwrite only the supplied non-empty fields of a record.

        The snapshot is saved even when nothing changed, so
        last_modified_at always advances.

        Raises:
            NotFoundError: If the id does not exist
        """
        validate_field("email", email)
        validate_field("name", name)

        return self._run_cycle(
            snapshot_name,
            raw,
            Operation.PATCH,
            record_id,
            lambda collection: collection.replace_fields(
                record_id, email, name, partial=True
            ),
            f"Record with ID {record_id} partially updated successfully in snapshot {snapshot_name}",
        )

    def delete_record(
        self,
        snapshot_name: str,
        record_id: int,
        raw: Optional[RawContent] = None,
    ) -> OperationResult:
        """
        Remove a record from a snapshot.

        Raises:
            NotFoundError: If the id does not exist
        """
        return self._run_cycle(
            snapshot_name,
            raw,
            Operation.DELETE,
            record_id,
            lambda collection: collection.remove(record_id),
            f"Record with ID {record_id} deleted successfully from snapshot {snapshot_name}",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_cycle(
        self,
        snapshot_name: str,
        raw: Optional[RawContent],
        operation: Operation,
        record_id: int,
        apply: Callable[[RecordCollection], object],
        message: str,
    ) -> OperationResult:
        """Load or initialize, apply the edit, then re-encode and save."""
        context = {
            "snapshot": snapshot_name,
            "operation": operation.value,
            "record_id": record_id,
        }

        try:
            snapshot = self._load_or_initialize(snapshot_name, raw)
            collection = RecordCollection(snapshot.records)
            apply(collection)

            records = collection.to_list()
            snapshot.replace_contents(records, encode(records), self.clock())
            self.store.save(snapshot)
        except RecordStoreError as e:
            logger.info(f"{operation.value} rejected: {e}", extra=context)
            raise

        logger.info(message, extra=context)
        return OperationResult(
            message=message,
            record_id=record_id,
            operation=operation,
            snapshot_name=snapshot_name,
        )

    def _load_or_initialize(
        self, snapshot_name: str, raw: Optional[RawContent]
    ) -> Snapshot:
        """
        Load a stored snapshot, or build an unsaved one from raw content.

        Raw content is only used when nothing is stored under the name.
        """
        snapshot = self.store.load(snapshot_name)
        if snapshot is not None:
            return snapshot

        if raw is None:
            raise NotFoundError(
                f"Snapshot not found: {snapshot_name}", snapshot_name=snapshot_name
            )

        text = decode_upload(raw)
        return Snapshot(name=snapshot_name, records=decode(text), raw_text=text)

    def _require_snapshot(self, snapshot_name: str) -> Snapshot:
        snapshot = self.store.load(snapshot_name)
        if snapshot is None:
            raise NotFoundError(
                f"Snapshot not found: {snapshot_name}", snapshot_name=snapshot_name
            )
        return snapshot
