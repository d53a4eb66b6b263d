"""
SQLite-based document store for snapshots.

One row per snapshot, keyed by a unique name. Records are stored as a
JSON array alongside the raw text and both timestamps.
"""

import json
import logging
import re
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from ..core.exceptions import BackendError
from ..core.models import Record, Snapshot, SnapshotInfo, utc_now
from ..core.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

MEMORY_DB = ":memory:"


class SqliteSnapshotStore(SnapshotStore):
    """
    SQLite-based implementation of the snapshot store.

    save() is an upsert by name: an existing row keeps its snapshot_id and
    created_at, a new row gets a UUID and both timestamps set to the save
    time.
    """

    def __init__(
        self,
        db_path: Union[str, Path] = MEMORY_DB,
        table: str = "snapshots",
        auto_init: bool = True,
    ):
        """
        Initialize the SQLite snapshot store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
            table: Table (collection) name for snapshot documents
            auto_init: Whether to create the table automatically
        """
        if not _IDENTIFIER_PATTERN.match(table or ""):
            raise ValueError(f"Invalid table name: {table}")

        self.db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self.table = table
        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to open SQLite snapshot store {self.db_path}: {e}")
            raise BackendError(
                f"Failed to open snapshot database: {e}", backend=self.get_name()
            ) from e

        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite snapshot store: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    snapshot_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    records TEXT NOT NULL,
                    raw_text TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    last_modified_at TEXT NOT NULL
                )
            """)
            self.conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize snapshot table {self.table}: {e}")
            raise BackendError(
                f"Failed to initialize snapshot table: {e}", backend=self.get_name()
            ) from e

        logger.debug(f"Initialized snapshot table: {self.table}")

    def load(self, name: str) -> Optional[Snapshot]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"SELECT * FROM {self.table} WHERE name = ?", (name,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to load snapshot {name}: {e}")
            raise BackendError(
                f"Failed to load snapshot {name}: {e}", backend=self.get_name()
            ) from e

        if row is None:
            return None
        return self._row_to_snapshot(row)

    def save(self, snapshot: Snapshot) -> Snapshot:
        saved = snapshot.copy()
        saved.last_modified_at = snapshot.last_modified_at or utc_now()
        records_json = json.dumps([r.to_dict() for r in saved.records])

        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"SELECT snapshot_id, created_at FROM {self.table} WHERE name = ?",
                (saved.name,),
            )
            existing = cursor.fetchone()

            if existing is not None:
                saved.snapshot_id = existing["snapshot_id"]
                saved.created_at = datetime.fromisoformat(existing["created_at"])
                cursor.execute(f"""
                    UPDATE {self.table}
                    SET records = ?, raw_text = ?, last_modified_at = ?
                    WHERE snapshot_id = ?
                """, (
                    records_json,
                    saved.raw_text,
                    saved.last_modified_at.isoformat(),
                    saved.snapshot_id,
                ))
            else:
                saved.snapshot_id = uuid.uuid4().hex
                saved.created_at = saved.last_modified_at
                cursor.execute(f"""
                    INSERT INTO {self.table} (
                        snapshot_id, name, records, raw_text,
                        created_at, last_modified_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    saved.snapshot_id,
                    saved.name,
                    records_json,
                    saved.raw_text,
                    saved.created_at.isoformat(),
                    saved.last_modified_at.isoformat(),
                ))

            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to save snapshot {saved.name}: {e}")
            raise BackendError(
                f"Failed to save snapshot {saved.name}: {e}", backend=self.get_name()
            ) from e

        logger.debug(f"Saved snapshot {saved.name} ({saved.record_count} records)")
        return saved

    def list_snapshots(self) -> List[SnapshotInfo]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                SELECT * FROM {self.table}
                ORDER BY created_at DESC
            """)
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to list snapshots: {e}")
            raise BackendError(
                f"Failed to list snapshots: {e}", backend=self.get_name()
            ) from e

        return [self._row_to_snapshot(row).to_info() for row in rows]

    def get_name(self) -> str:
        return "sqlite"

    def _row_to_snapshot(self, row: sqlite3.Row) -> Snapshot:
        """Convert a database row to a Snapshot object."""
        return Snapshot(
            name=row["name"],
            records=[Record.from_dict(item) for item in json.loads(row["records"])],
            raw_text=row["raw_text"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_modified_at=datetime.fromisoformat(row["last_modified_at"]),
            snapshot_id=row["snapshot_id"],
        )

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite snapshot store connection")
