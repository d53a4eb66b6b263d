"""
Unit tests for SqlServerSnapshotStore.

pyodbc is replaced by a mock so no database is needed.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from recordstore.core.exceptions import BackendError
from recordstore.core.models import Record, Snapshot
from recordstore.storage.sqlserver_store import SqlServerSnapshotStore


T0 = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)
T1 = datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)


class FakePyodbcError(Exception):
    pass


@pytest.fixture
def mock_pyodbc():
    with patch("recordstore.storage.sqlserver_store.pyodbc") as mock_module:
        mock_module.Error = FakePyodbcError
        yield mock_module


@pytest.fixture
def store(mock_pyodbc):
    store = SqlServerSnapshotStore(connection_string="mocked", auto_init=False)
    store._mock_cursor = mock_pyodbc.connect.return_value.cursor.return_value
    return store


def make_snapshot(stamp=T1):
    snapshot = Snapshot(name="users.csv")
    snapshot.replace_contents([Record(1, "a@x.com", "A")], "id=1,email=a@x.com,name=A\n", stamp)
    return snapshot


class TestConstruction:

    def test_builds_connection_string(self, mock_pyodbc):
        store = SqlServerSnapshotStore(host="db", port=1500, database="Records",
                                       username="svc", password="pw", auto_init=False)

        assert "Server=db,1500;" in store.connection_string
        assert "Database=Records;" in store.connection_string
        assert "UID=svc;" in store.connection_string
        mock_pyodbc.connect.assert_called_once_with(store.connection_string)

    @pytest.mark.parametrize("kwargs", [
        {"schema": "drop"},
        {"schema": "bad-schema"},
        {"table": "1snapshots"},
        {"table": "x]; DROP TABLE y; --"},
    ])
    def test_invalid_identifiers(self, mock_pyodbc, kwargs):
        with pytest.raises(ValueError):
            SqlServerSnapshotStore(connection_string="mocked", auto_init=False, **kwargs)

    def test_auto_init_creates_schema_and_table(self, mock_pyodbc):
        SqlServerSnapshotStore(connection_string="mocked", schema="records", table="csv_files")

        cursor = mock_pyodbc.connect.return_value.cursor.return_value
        statements = [c.args[0] for c in cursor.execute.call_args_list]
        assert any("CREATE SCHEMA [records]" in s for s in statements)
        assert any("CREATE TABLE [records].[csv_files]" in s for s in statements)
        mock_pyodbc.connect.return_value.commit.assert_called_once()

    def test_connect_failure(self, mock_pyodbc):
        mock_pyodbc.connect.side_effect = FakePyodbcError("login failed")
        with pytest.raises(BackendError):
            SqlServerSnapshotStore(connection_string="mocked", auto_init=False)

    def test_requires_pyodbc(self):
        with patch("recordstore.storage.sqlserver_store.pyodbc", None):
            with pytest.raises(ImportError):
                SqlServerSnapshotStore(connection_string="mocked")


class TestLoad:

    def test_missing(self, store):
        store._mock_cursor.fetchone.return_value = None
        assert store.load("users.csv") is None

    def test_row_to_snapshot(self, store):
        store._mock_cursor.fetchone.return_value = (
            "abc123",
            "users.csv",
            json.dumps([{"id": 1, "email": "a@x.com", "name": "A"}]),
            "id=1,email=a@x.com,name=A\n",
            datetime(2026, 2, 1, 9, 30),
            datetime(2026, 2, 1, 10, 0),
        )

        snapshot = store.load("users.csv")

        assert snapshot.snapshot_id == "abc123"
        assert snapshot.records == [Record(1, "a@x.com", "A")]
        assert snapshot.created_at == T0
        assert snapshot.last_modified_at == T1
        assert store._mock_cursor.execute.call_args.args[1] == ("users.csv",)


class TestSave:

    def test_insert_new(self, store):
        store._mock_cursor.fetchone.return_value = None

        saved = store.save(make_snapshot())

        insert_sql, params = store._mock_cursor.execute.call_args.args
        assert "INSERT INTO [recordstore].[snapshots]" in insert_sql
        assert params[0] == saved.snapshot_id
        assert params[1] == "users.csv"
        assert json.loads(params[2]) == [{"id": 1, "email": "a@x.com", "name": "A"}]
        assert params[4] == datetime(2026, 2, 1, 10, 0)
        assert saved.created_at == T1
        store.conn.commit.assert_called_once()

    def test_update_existing(self, store):
        store._mock_cursor.fetchone.return_value = ("abc123", datetime(2026, 2, 1, 9, 30))

        saved = store.save(make_snapshot())

        update_sql, params = store._mock_cursor.execute.call_args.args
        assert "UPDATE [recordstore].[snapshots]" in update_sql
        assert params[1] == "id=1,email=a@x.com,name=A\n"
        assert params[3] == "abc123"
        assert saved.snapshot_id == "abc123"
        assert saved.created_at == T0
        assert saved.last_modified_at == T1

    def test_failure_rolls_back(self, store):
        store._mock_cursor.execute.side_effect = FakePyodbcError("deadlock")

        with pytest.raises(BackendError) as exc_info:
            store.save(make_snapshot())

        assert exc_info.value.backend == "sqlserver"
        store.conn.rollback.assert_called_once()
        store.conn.commit.assert_not_called()


def test_list_snapshots(store):
    store._mock_cursor.fetchall.return_value = [
        ("id2", "b.csv", "[]", "", datetime(2026, 2, 2), datetime(2026, 2, 2)),
        ("id1", "a.csv", json.dumps([{"id": 1, "email": "a", "name": "A"}]), "id=1,email=a,name=A\n",
         datetime(2026, 2, 1), datetime(2026, 2, 1)),
    ]

    infos = store.list_snapshots()

    assert [(i.name, i.record_count) for i in infos] == [("b.csv", 0), ("a.csv", 1)]
    assert "ORDER BY created_at DESC" in store._mock_cursor.execute.call_args.args[0]


def test_close(store):
    conn = store.conn
    store.close()
    conn.close.assert_called_once()
    assert store.conn is None
