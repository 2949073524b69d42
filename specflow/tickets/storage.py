"""
Snapshot stores for the ticket repository.

A store holds opaque string blobs by key. The repository writes two keys
after every mutation: the ticket collection and the next ticket number.

FileStore layout:
  <data_dir>/specflow-tickets.json
  <data_dir>/specflow-next-number
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Key/value blob store interface."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryStore(SnapshotStore):
    """In-process store. Used by tests and when no data directory is given."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class FileStore(SnapshotStore):
    """One file per key inside a data directory.

    Writes go to a temp file in the same directory and are renamed into
    place, so a crash mid-write leaves the previous snapshot intact.
    """

    SUFFIXES = {"specflow-tickets": ".json"}

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}{self.SUFFIXES.get(key, '')}"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text()

    def set(self, key: str, value: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)

        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"[STORE] wrote {path} ({len(value)} bytes)")
