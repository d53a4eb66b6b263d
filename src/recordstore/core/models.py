"""
Core data models for the record store engine.

Defines the Record entry, the Snapshot that owns a list of records plus
its textual form, and the result types returned by engine operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Operation(str, Enum):
    """Mutation verbs applied to a snapshot."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Record:
    """
    One identity-keyed entry of a snapshot.

    Attributes:
        id: Unique key within the owning snapshot
        email: Email address
        name: Display name
    """
    id: int
    email: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "email": self.email, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Create from dictionary."""
        return cls(id=int(data["id"]), email=data["email"], name=data["name"])


@dataclass
class SnapshotInfo:
    """Summary of a stored snapshot, as returned by describe/list."""
    snapshot_id: Optional[str]
    name: str
    record_count: int
    created_at: Optional[datetime]
    last_modified_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with ISO-8601 timestamps."""
        return {
            "id": self.snapshot_id,
            "name": self.name,
            "record_count": self.record_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_modified_at": (
                self.last_modified_at.isoformat() if self.last_modified_at else None
            ),
        }


@dataclass
class Snapshot:
    """
    A named, ordered collection of records plus its textual form.

    `records` and `raw_text` describe the same content and are changed
    together through replace_contents().

    Attributes:
        name: Stable lookup name (typically the uploaded filename)
        records: Ordered records, ids distinct
        raw_text: Textual representation of `records`
        created_at: Set once, at first persistence
        last_modified_at: Refreshed on every content change
        snapshot_id: Backend-assigned identity, None until first save
    """
    name: str
    records: List[Record] = field(default_factory=list)
    raw_text: str = ""
    created_at: Optional[datetime] = None
    last_modified_at: Optional[datetime] = None
    snapshot_id: Optional[str] = None

    @property
    def record_count(self) -> int:
        return len(self.records)

    def replace_contents(
        self,
        records: List[Record],
        raw_text: str,
        modified_at: Optional[datetime] = None,
    ) -> None:
        """
        Replace the record list and raw text and stamp last_modified_at.

        The stamp never moves backwards or repeats: if `modified_at` is not
        after the previous stamp, the previous stamp plus one microsecond
        is used instead.
        """
        stamp = modified_at or utc_now()
        if self.last_modified_at is not None and stamp <= self.last_modified_at:
            stamp = self.last_modified_at + timedelta(microseconds=1)
        self.records = list(records)
        self.raw_text = raw_text
        self.last_modified_at = stamp

    def copy(self) -> "Snapshot":
        """Return a copy that does not share the record list."""
        return Snapshot(
            name=self.name,
            records=list(self.records),
            raw_text=self.raw_text,
            created_at=self.created_at,
            last_modified_at=self.last_modified_at,
            snapshot_id=self.snapshot_id,
        )

    def to_info(self) -> SnapshotInfo:
        return SnapshotInfo(
            snapshot_id=self.snapshot_id,
            name=self.name,
            record_count=self.record_count,
            created_at=self.created_at,
            last_modified_at=self.last_modified_at,
        )


@dataclass
class OperationResult:
    """Confirmation returned by a successful mutation."""
    message: str
    record_id: int
    operation: Operation
    snapshot_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "id": self.record_id,
            "operation": self.operation.value,
            "snapshot": self.snapshot_name,
        }


@dataclass
class SyncResult:
    """Result of uploading snapshot text and re-syncing the stored copy."""
    snapshot_name: str
    snapshot_id: Optional[str]
    records: List[Record]
    created: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot_name,
            "id": self.snapshot_id,
            "created": self.created,
            "count": len(self.records),
            "records": [r.to_dict() for r in self.records],
        }
