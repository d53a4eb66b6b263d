"""
Snapshot store implementations.

Backends:
    - memory: MemorySnapshotStore (process-local)
    - file: FileSnapshotStore (one text file per snapshot)
    - sqlite: SqliteSnapshotStore (document table, default)
    - sqlserver: SqlServerSnapshotStore (document table, requires pyodbc)

To select a backend without passing one explicitly, set the
RECORDSTORE_BACKEND environment variable.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..core.snapshot_store import SnapshotStore
from .file_store import FileSnapshotStore
from .memory_store import MemorySnapshotStore
from .sqlite_store import SqliteSnapshotStore


logger = logging.getLogger(__name__)

BACKENDS = ("memory", "file", "sqlite", "sqlserver")

DEFAULT_BACKEND = "sqlite"


# Lazy import so pyodbc is only needed when SQL Server is selected
def _get_sqlserver_store():
    from .sqlserver_store import SqlServerSnapshotStore
    return SqlServerSnapshotStore


def create_snapshot_store(
    backend: Optional[str] = None,
    # File options
    root_dir: Optional[Union[str, Path]] = None,
    encoding: str = "utf-8",
    # SQLite options
    db_path: Optional[Union[str, Path]] = None,
    # Shared document options
    table: str = "snapshots",
    # SQL Server options
    connection_string: Optional[str] = None,
    host: str = "localhost",
    port: int = 1433,
    database: str = "RecordStore",
    username: str = "sa",
    password: Optional[str] = None,
    driver: str = "ODBC Driver 18 for SQL Server",
    schema: str = "recordstore",
    trust_server_certificate: bool = True,
    auto_init: bool = True,
) -> SnapshotStore:
    """
    Factory function to create a snapshot store backend.

    Args:
        backend: One of 'memory', 'file', 'sqlite', 'sqlserver'.
            Defaults to RECORDSTORE_BACKEND env var or 'sqlite'.

        File options:
            root_dir: Directory holding snapshot files
            encoding: Text encoding of snapshot files

        SQLite options:
            db_path: Path to SQLite database file

        SQL Server options:
            connection_string: Full ODBC connection string
            host, port, database, username, password, driver: Connection parts
            schema: Schema name for the snapshot table
            trust_server_certificate: Trust self-signed certs

        table: Table (collection) name for document backends
        auto_init: Auto-create schema/tables

    Returns:
        SnapshotStore instance

    Raises:
        ValueError: If backend is not recognized
    """
    if backend is None:
        backend = os.environ.get("RECORDSTORE_BACKEND", DEFAULT_BACKEND)
    backend = backend.lower()

    logger.debug(f"Creating snapshot store backend: {backend}")

    if backend == "memory":
        return MemorySnapshotStore()

    elif backend == "file":
        if root_dir is None:
            root_dir = Path("local/snapshots")
        return FileSnapshotStore(root_dir=Path(root_dir), encoding=encoding)

    elif backend == "sqlite":
        if db_path is None:
            db_path = Path("local/state/recordstore.db")
        return SqliteSnapshotStore(db_path=db_path, table=table, auto_init=auto_init)

    elif backend == "sqlserver":
        SqlServerSnapshotStore = _get_sqlserver_store()

        if password is None:
            password = os.environ.get("RECORDSTORE_SQLSERVER_PASSWORD")

        if connection_string is None:
            connection_string = os.environ.get("RECORDSTORE_SQLSERVER_CONN_STR")

        return SqlServerSnapshotStore(
            connection_string=connection_string,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            driver=driver,
            schema=schema,
            table=table,
            auto_init=auto_init,
            trust_server_certificate=trust_server_certificate,
        )

    else:
        raise ValueError(
            f"Unknown backend: {backend}. "
            f"Supported backends: {', '.join(BACKENDS)}"
        )


def create_snapshot_store_from_config(config, backend: Optional[str] = None) -> SnapshotStore:
    """
    Build the snapshot store described by a RecordStoreConfig.

    Args:
        config: Loaded RecordStoreConfig
        backend: Optional backend name overriding the configured one
    """
    backend = (backend or config.get_backend()).lower()
    settings = config.get_backend_config(backend)

    if backend == "file":
        return create_snapshot_store(
            backend,
            root_dir=settings.get("root_dir"),
            encoding=settings.get("encoding", "utf-8"),
        )

    if backend == "sqlite":
        return create_snapshot_store(
            backend,
            db_path=settings.get("db_path"),
            table=settings.get("table", "snapshots"),
        )

    if backend == "sqlserver":
        return create_snapshot_store(
            backend,
            connection_string=settings.get("connection_string"),
            host=settings.get("host", "localhost"),
            port=int(settings.get("port", 1433)),
            database=settings.get("database", "RecordStore"),
            username=settings.get("user", "sa"),
            password=settings.get("password"),
            driver=settings.get("driver", "ODBC Driver 18 for SQL Server"),
            schema=settings.get("schema", "recordstore"),
            table=settings.get("table", "snapshots"),
        )

    return create_snapshot_store(backend)


__all__ = [
    "BACKENDS",
    "FileSnapshotStore",
    "MemorySnapshotStore",
    "SqliteSnapshotStore",
    "create_snapshot_store",
    "create_snapshot_store_from_config",
]
