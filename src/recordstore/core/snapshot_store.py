"""
Snapshot store interface for persisting snapshots.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import Snapshot, SnapshotInfo


class SnapshotStore(ABC):
    """
    Abstract base class for snapshot stores.

    Snapshot stores own the lifecycle of snapshots: they look them up by
    name and persist them, deciding on save whether a snapshot is new or
    an update of one already stored.
    """

    @abstractmethod
    def load(self, name: str) -> Optional[Snapshot]:
        """
        Load a snapshot by name.

        Args:
            name: Snapshot name

        Returns:
            Snapshot if found, None otherwise

        Raises:
            BackendError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, snapshot: Snapshot) -> Snapshot:
        """
        Persist a snapshot, creating or updating it.

        An existing snapshot with the same name keeps its identity and
        created_at; records, raw text and last_modified_at are replaced.
        A new snapshot gets both timestamps set to the save time.

        Args:
            snapshot: The snapshot to save

        Returns:
            The snapshot as stored, with identity and timestamps filled in

        Raises:
            BackendError: If the write fails
        """
        pass

    @abstractmethod
    def list_snapshots(self) -> List[SnapshotInfo]:
        """Return info for every stored snapshot, newest first."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the store backend name/identifier."""
        pass

    def exists(self, name: str) -> bool:
        """Check whether a snapshot with the given name is stored."""
        return self.load(name) is not None

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass

    def __enter__(self) -> "SnapshotStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()
