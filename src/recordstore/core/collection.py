"""
In-memory working copy of a snapshot's records.
"""

from dataclasses import replace
from typing import Iterable, Iterator, List, Optional

from .exceptions import DuplicateKeyError, NotFoundError
from .models import Record


class RecordCollection:
    """
    Ordered, key-unique sequence of records.

    Insertion order is preserved. Lookups are a linear scan. The
    collection holds its own list, so edits never reach the snapshot it
    was built from until the caller writes them back.
    """

    def __init__(self, records: Optional[Iterable[Record]] = None):
        self._records: List[Record] = list(records or [])

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def to_list(self) -> List[Record]:
        return list(self._records)

    def find(self, record_id: int) -> Optional[int]:
        """
        Find the index of the first record with the given id.

        Returns:
            Index if found, None otherwise
        """
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    def get(self, record_id: int) -> Record:
        """Return the record with the given id or raise NotFoundError."""
        return self._records[self._require(record_id)]

    def insert(self, record: Record) -> None:
        """
        Append a record.

        Raises:
            DuplicateKeyError: If a record with the same id exists
        """
        if self.find(record.id) is not None:
            raise DuplicateKeyError(
                f"Record with ID {record.id} already exists",
                record_id=record.id,
            )
        self._records.append(record)

    def replace_fields(
        self,
        record_id: int,
        email: Optional[str] = None,
        name: Optional[str] = None,
        partial: bool = False,
    ) -> Record:
        """
        Overwrite the email and name of a record.

        A full replace (partial=False) requires both values and overwrites
        both. A partial replace only overwrites values that are non-empty;
        the rest keep their current value.

        Args:
            record_id: Id of the record to change
            email: New email
            name: New name
            partial: Whether to skip absent/empty values

        Returns:
            The updated record

        Raises:
            NotFoundError: If no record has the id
            ValueError: If a full replace is missing a value
        """
        if not partial and (email is None or name is None):
            raise ValueError("A full update requires both email and name")

        index = self._require(record_id)
        current = self._records[index]

        if partial:
            updated = replace(
                current,
                email=email if email else current.email,
                name=name if name else current.name,
            )
        else:
            updated = replace(current, email=email, name=name)

        self._records[index] = updated
        return updated

    def remove(self, record_id: int) -> Record:
        """
        Remove a record, keeping the order of the others.

        Raises:
            NotFoundError: If no record has the id
        """
        return self._records.pop(self._require(record_id))

    def _require(self, record_id: int) -> int:
        index = self.find(record_id)
        if index is None:
            raise NotFoundError(
                f"Record with ID {record_id} not found",
                record_id=record_id,
            )
        return index
