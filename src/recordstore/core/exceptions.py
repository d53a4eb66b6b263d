"""
Custom exceptions for the record store engine.
"""

from typing import Optional


class RecordStoreError(Exception):
    """Base exception for all record store errors."""
    pass


class FormatError(RecordStoreError):
    """
    Snapshot text or a field value is malformed.

    Raised when:
    - A line is missing `id`, `email` or `name`
    - `id` is not an integer
    - An upload is empty or not valid UTF-8
    - A field value cannot be represented in the line format
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
    ):
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class DuplicateKeyError(RecordStoreError):
    """A record with the same id already exists in the snapshot."""

    def __init__(self, message: str, record_id: Optional[int] = None):
        super().__init__(message)
        self.record_id = record_id


class NotFoundError(RecordStoreError):
    """
    A record id or snapshot name does not exist.

    Exactly one of `record_id` / `snapshot_name` is usually set, depending
    on what was missing.
    """

    def __init__(
        self,
        message: str,
        record_id: Optional[int] = None,
        snapshot_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.record_id = record_id
        self.snapshot_name = snapshot_name


class BackendError(RecordStoreError):
    """
    A snapshot store failed to read or write.

    Not retried by the engine.
    """

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message)
        self.backend = backend
