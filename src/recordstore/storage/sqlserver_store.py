"""
SQL Server-based document store for snapshots.

Same document semantics as the SQLite store: one row per snapshot with
the records as a JSON array (NVARCHAR(MAX)), upserted by name.
"""

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import List, Optional

try:
    import pyodbc
except ImportError:
    pyodbc = None

from ..core.exceptions import BackendError
from ..core.models import Record, Snapshot, SnapshotInfo, utc_now
from ..core.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)


class SqlServerSnapshotStore(SnapshotStore):
    """
    SQL Server-based implementation of the snapshot store.

    Timestamps are stored as UTC in DATETIME2 columns and returned as
    aware UTC datetimes.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        host: str = "localhost",
        port: int = 1433,
        database: str = "RecordStore",
        username: str = "sa",
        password: Optional[str] = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        schema: str = "recordstore",
        table: str = "snapshots",
        auto_init: bool = True,
        trust_server_certificate: bool = True,
    ):
        """
        Initialize the SQL Server snapshot store.

        Args:
            connection_string: Full ODBC connection string (if provided, other params ignored)
            host: SQL Server host
            port: SQL Server port
            database: Database name
            username: Database username
            password: Database password
            driver: ODBC driver name
            schema: Schema name for the snapshot table
            table: Table (collection) name for snapshot documents
            auto_init: Whether to create schema and table automatically
            trust_server_certificate: Whether to trust self-signed certificates
        """
        if pyodbc is None:
            raise ImportError(
                "pyodbc is required for SqlServerSnapshotStore. "
                "Install with: pip install pyodbc"
            )

        for identifier in (schema, table):
            if not self._is_valid_identifier(identifier):
                raise ValueError(f"Invalid SQL identifier: {identifier}")

        self.schema = schema
        self.table = table

        if connection_string:
            self.connection_string = connection_string
        else:
            trust_cert = "yes" if trust_server_certificate else "no"
            self.connection_string = (
                f"Driver={{{driver}}};"
                f"Server={host},{port};"
                f"Database={database};"
                f"UID={username};"
                f"PWD={password};"
                f"TrustServerCertificate={trust_cert}"
            )

        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    @property
    def qualified_table(self) -> str:
        return f"[{self.schema}].[{self.table}]"

    def _is_valid_identifier(self, name: str) -> bool:
        """
        Validate that a name is a safe SQL identifier.

        Must start with a letter or underscore, contain only letters,
        digits and underscores, be at most 128 characters and not be a
        reserved word.
        """
        if not name or len(name) > 128:
            return False

        if not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', name):
            return False

        reserved_words = {
            'select', 'insert', 'update', 'delete', 'drop', 'create', 'alter',
            'exec', 'execute', 'union', 'where', 'from', 'table', 'database',
            'schema', 'index', 'grant', 'revoke', 'truncate', 'declare', 'set'
        }
        return name.lower() not in reserved_words

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self.conn = pyodbc.connect(self.connection_string)
            logger.debug(f"Connected to SQL Server snapshot store (schema: {self.schema})")
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to SQL Server: {e}")
            raise BackendError(
                f"Failed to connect to SQL Server: {e}", backend=self.get_name()
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema and snapshot table."""
        cursor = self.conn.cursor()

        try:
            # Schema and table names are whitelisted in __init__
            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = ?)
                BEGIN
                    EXEC('CREATE SCHEMA [{self.schema}]')
                END
            """, (self.schema,))

            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.tables t
                               JOIN sys.schemas s ON t.schema_id = s.schema_id
                               WHERE t.name = ? AND s.name = ?)
                BEGIN
                    CREATE TABLE {self.qualified_table} (
                        snapshot_id NVARCHAR(32) PRIMARY KEY,
                        name NVARCHAR(400) NOT NULL UNIQUE,
                        records NVARCHAR(MAX) NOT NULL,
                        raw_text NVARCHAR(MAX) NOT NULL,
                        created_at DATETIME2 NOT NULL,
                        last_modified_at DATETIME2 NOT NULL
                    )
                END
            """, (self.table, self.schema))

            self.conn.commit()
            logger.debug(f"Initialized snapshot table {self.qualified_table}")

        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to initialize snapshot schema: {e}")
            raise BackendError(
                f"Failed to initialize snapshot schema: {e}", backend=self.get_name()
            ) from e

    def load(self, name: str) -> Optional[Snapshot]:
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                SELECT snapshot_id, name, records, raw_text, created_at, last_modified_at
                FROM {self.qualified_table}
                WHERE name = ?
            """, (name,))
            row = cursor.fetchone()
        except pyodbc.Error as e:
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
        records_json = json.dumps([r.to_dict() for r in saved.records], ensure_ascii=False)

        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                SELECT snapshot_id, created_at
                FROM {self.qualified_table} WITH (UPDLOCK, HOLDLOCK)
                WHERE name = ?
            """, (saved.name,))
            existing = cursor.fetchone()

            if existing is not None:
                saved.snapshot_id = existing[0]
                saved.created_at = _from_db_time(existing[1])
                cursor.execute(f"""
                    UPDATE {self.qualified_table}
                    SET records = ?, raw_text = ?, last_modified_at = ?
                    WHERE snapshot_id = ?
                """, (
                    records_json,
                    saved.raw_text,
                    _to_db_time(saved.last_modified_at),
                    saved.snapshot_id,
                ))
            else:
                saved.snapshot_id = uuid.uuid4().hex
                saved.created_at = saved.last_modified_at
                cursor.execute(f"""
                    INSERT INTO {self.qualified_table} (
                        snapshot_id, name, records, raw_text,
                        created_at, last_modified_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    saved.snapshot_id,
                    saved.name,
                    records_json,
                    saved.raw_text,
                    _to_db_time(saved.created_at),
                    _to_db_time(saved.last_modified_at),
                ))

            self.conn.commit()

        except pyodbc.Error as e:
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
                SELECT snapshot_id, name, records, raw_text, created_at, last_modified_at
                FROM {self.qualified_table}
                ORDER BY created_at DESC
            """)
            rows = cursor.fetchall()
        except pyodbc.Error as e:
            logger.error(f"Failed to list snapshots: {e}")
            raise BackendError(
                f"Failed to list snapshots: {e}", backend=self.get_name()
            ) from e

        return [self._row_to_snapshot(row).to_info() for row in rows]

    def get_name(self) -> str:
        return "sqlserver"

    def _row_to_snapshot(self, row) -> Snapshot:
        """Convert a result row (positional columns) to a Snapshot."""
        snapshot_id, name, records_json, raw_text, created_at, last_modified_at = row
        return Snapshot(
            name=name,
            records=[Record.from_dict(item) for item in json.loads(records_json)],
            raw_text=raw_text,
            created_at=_from_db_time(created_at),
            last_modified_at=_from_db_time(last_modified_at),
            snapshot_id=snapshot_id,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQL Server snapshot store connection")


def _to_db_time(value: datetime) -> datetime:
    """DATETIME2 has no offset: store naive UTC."""
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)
