"""
Shared test fixtures and configuration for pytest.
"""

import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from recordstore.engine import RecordStoreEngine
from recordstore.storage import FileSnapshotStore, MemorySnapshotStore, SqliteSnapshotStore


logger = logging.getLogger(__name__)


SAMPLE_TEXT = (
    "id=1,email=alice@example.com,name=Alice\n"
    "id=2,email=bob@example.com,name=Bob\n"
)


# ============================================================================
# Environment detection
# ============================================================================

def is_sqlserver_available() -> bool:
    """Check if SQL Server is available for testing."""
    password = os.environ.get("RECORDSTORE_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")
    if not password:
        return False

    try:
        import pyodbc

        conn = pyodbc.connect(build_sqlserver_conn_str(password), timeout=5)
        conn.close()
        return True

    except Exception as e:
        logger.debug(f"SQL Server not available: {e}")
        return False


def build_sqlserver_conn_str(password: str) -> str:
    host = os.environ.get("RECORDSTORE_SQLSERVER_HOST", "localhost")
    port = int(os.environ.get("RECORDSTORE_SQLSERVER_PORT", "1433"))
    database = os.environ.get("RECORDSTORE_SQLSERVER_DATABASE", "master")
    username = os.environ.get("RECORDSTORE_SQLSERVER_USER", "sa")
    driver = os.environ.get("RECORDSTORE_SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server")

    return (
        f"Driver={{{driver}}};"
        f"Server={host},{port};"
        f"Database={database};"
        f"UID={username};"
        f"PWD={password};"
        f"TrustServerCertificate=yes"
    )


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires SQL Server)")


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if SQL Server is not available."""
    if not any("integration" in item.keywords for item in items):
        return
    if is_sqlserver_available():
        return

    skip_sqlserver = pytest.mark.skip(
        reason="SQL Server not available (set RECORDSTORE_SQLSERVER_PASSWORD and ensure SQL Server is running)"
    )

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_sqlserver)


# ============================================================================
# Fixtures
# ============================================================================

class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture(scope="session")
def sqlserver_conn_str() -> str:
    """Session-scoped fixture providing the SQL Server connection string."""
    password = os.environ.get("RECORDSTORE_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")
    if not password:
        pytest.skip("SQL Server password not configured")
    return build_sqlserver_conn_str(password)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def memory_store():
    return MemorySnapshotStore()


@pytest.fixture
def file_store(tmp_path):
    return FileSnapshotStore(root_dir=tmp_path / "snapshots")


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteSnapshotStore(db_path=tmp_path / "state" / "recordstore.db")
    yield store
    store.close()


@pytest.fixture(params=["memory", "file", "sqlite"])
def any_store(request, tmp_path):
    """Each local backend in turn."""
    if request.param == "memory":
        store = MemorySnapshotStore()
    elif request.param == "file":
        store = FileSnapshotStore(root_dir=tmp_path / "snapshots")
    else:
        store = SqliteSnapshotStore(db_path=tmp_path / "recordstore.db")
    yield store
    store.close()


@pytest.fixture
def engine(any_store, clock) -> RecordStoreEngine:
    """Engine over each local backend, with users.csv already synced."""
    engine = RecordStoreEngine(any_store, clock=clock)
    engine.sync_snapshot("users.csv", SAMPLE_TEXT.encode("utf-8"))
    return engine
