"""
File-based snapshot store.

Each snapshot is a plain text file under a root directory. There is no
separate metadata record: timestamps come from the file system.
"""

import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from ..core.codec import decode
from ..core.exceptions import BackendError, FormatError
from ..core.models import Snapshot, SnapshotInfo, utc_now
from ..core.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".tmp"


class FileSnapshotStore(SnapshotStore):
    """
    Stores each snapshot as a text file at {root_dir}/{name}.

    Names are relative POSIX paths, so `exports/users.csv` lands in an
    `exports` subdirectory. The snapshot identity is its name.

    Timestamps:
        last_modified_at is the file mtime, which save() sets to the
        snapshot's stamp. created_at is the file birth time where the
        platform reports one, otherwise the earlier of ctime and mtime.
        Without a birth time (most Linux file systems) every save replaces
        the file, so created_at follows last_modified_at.
    """

    def __init__(
        self,
        root_dir: Path,
        encoding: str = "utf-8",
        create_dirs: bool = True,
    ):
        """
        Initialize the file snapshot store.

        Args:
            root_dir: Directory holding the snapshot files
            encoding: Text encoding of snapshot files
            create_dirs: Whether to create directories automatically
        """
        self.root_dir = Path(root_dir)
        self.encoding = encoding
        self.create_dirs = create_dirs

        if create_dirs:
            self.root_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """
        Map a snapshot name to its file path.

        Raises:
            ValueError: If the name is empty, absolute, escapes root_dir or
                ends with the temp file suffix
        """
        parts = name.split("/") if name else [""]
        if "\\" in name or any(part in ("", ".", "..") for part in parts):
            raise ValueError(f"Invalid snapshot name: {name!r}")
        if parts[-1].endswith(_TEMP_SUFFIX):
            raise ValueError(f"Snapshot name cannot end with {_TEMP_SUFFIX!r}: {name!r}")
        return self.root_dir.joinpath(*parts)

    def load(self, name: str) -> Optional[Snapshot]:
        path = self.path_for(name)
        try:
            if not path.is_file():
                return None
            text = path.read_text(encoding=self.encoding)
            created_at, modified_at = self._file_times(path)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise FormatError(
                f"Snapshot {name} is not valid {self.encoding}: {e}"
            ) from e
        except OSError as e:
            logger.error(f"Failed to read snapshot file {path}: {e}")
            raise BackendError(
                f"Failed to read snapshot {name}: {e}", backend=self.get_name()
            ) from e

        logger.debug(f"Loaded snapshot file: {path}")
        return Snapshot(
            name=name,
            records=decode(text),
            raw_text=text,
            created_at=created_at,
            last_modified_at=modified_at,
            snapshot_id=name,
        )

    def save(self, snapshot: Snapshot) -> Snapshot:
        path = self.path_for(snapshot.name)
        modified_at = snapshot.last_modified_at or utc_now()

        try:
            created_at = self._file_times(path)[0] if path.is_file() else modified_at

            if self.create_dirs:
                path.parent.mkdir(parents=True, exist_ok=True)

            self._write_atomic(path, snapshot.raw_text)
            mtime_ns = _to_ns(modified_at)
            os.utime(path, ns=(mtime_ns, mtime_ns))
        except OSError as e:
            logger.error(f"Failed to write snapshot file {path}: {e}")
            raise BackendError(
                f"Failed to save snapshot {snapshot.name}: {e}",
                backend=self.get_name(),
            ) from e

        logger.debug(f"Wrote snapshot file: {path}")

        saved = snapshot.copy()
        saved.snapshot_id = snapshot.name
        saved.created_at = min(created_at, modified_at)
        saved.last_modified_at = modified_at
        return saved

    def list_snapshots(self) -> List[SnapshotInfo]:
        infos = []
        if not self.root_dir.is_dir():
            return infos

        for path in sorted(self.root_dir.rglob("*")):
            if not path.is_file() or path.name.endswith(_TEMP_SUFFIX):
                continue
            name = path.relative_to(self.root_dir).as_posix()
            try:
                snapshot = self.load(name)
            except (FormatError, ValueError) as e:
                logger.warning(f"Skipping unreadable snapshot file {path}: {e}")
                continue
            if snapshot is not None:
                infos.append(snapshot.to_info())

        infos.sort(key=lambda info: info.created_at, reverse=True)
        return infos

    def get_name(self) -> str:
        return "file"

    def _write_atomic(self, path: Path, text: str) -> None:
        """Write text to a temp file in the same directory, then replace path."""
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=_TEMP_SUFFIX, dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding=self.encoding, newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def _file_times(self, path: Path) -> Tuple[datetime, datetime]:
        """Return (created_at, last_modified_at) for a file."""
        stat = path.stat()
        modified_at = _from_ns(stat.st_mtime_ns)

        birthtime = getattr(stat, "st_birthtime", None)
        if birthtime is not None:
            created_at = datetime.fromtimestamp(birthtime, tz=timezone.utc)
        else:
            created_at = _from_ns(stat.st_ctime_ns)

        return min(created_at, modified_at), modified_at


def _to_ns(value: datetime) -> int:
    """Convert an aware datetime to integer nanoseconds since the epoch."""
    seconds = int(value.replace(microsecond=0).timestamp())
    return seconds * 1_000_000_000 + value.microsecond * 1000


def _from_ns(value: int) -> datetime:
    """Convert integer nanoseconds since the epoch to an aware UTC datetime."""
    seconds, remainder = divmod(value, 1_000_000_000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(
        microseconds=remainder // 1000
    )
