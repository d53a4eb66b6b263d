"""
In-memory snapshot store.

Useful for tests and short-lived processes; nothing survives the
process.
"""

import logging
import uuid
from typing import Dict, List, Optional

from ..core.models import Snapshot, SnapshotInfo, utc_now
from ..core.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)


class MemorySnapshotStore(SnapshotStore):
    """
    Keeps snapshots in a dict keyed by name.

    Snapshots are copied on the way in and out, so a caller editing a
    loaded snapshot never changes the stored one.
    """

    def __init__(self):
        self._snapshots: Dict[str, Snapshot] = {}

    def load(self, name: str) -> Optional[Snapshot]:
        stored = self._snapshots.get(name)
        if stored is None:
            return None
        return stored.copy()

    def save(self, snapshot: Snapshot) -> Snapshot:
        existing = self._snapshots.get(snapshot.name)
        saved = snapshot.copy()
        saved.last_modified_at = snapshot.last_modified_at or utc_now()

        if existing is not None:
            saved.snapshot_id = existing.snapshot_id
            saved.created_at = existing.created_at
            logger.debug(f"Updated snapshot in memory: {snapshot.name}")
        else:
            saved.snapshot_id = uuid.uuid4().hex
            saved.created_at = saved.last_modified_at
            logger.debug(f"Created snapshot in memory: {snapshot.name}")

        self._snapshots[snapshot.name] = saved
        return saved.copy()

    def list_snapshots(self) -> List[SnapshotInfo]:
        infos = [s.to_info() for s in self._snapshots.values()]
        infos.sort(key=lambda info: info.created_at, reverse=True)
        return infos

    def get_name(self) -> str:
        return "memory"
