"""
Local JSON File Storage

The default snapshot backend: one JSON document per store name in a
data directory. Writes go to a temporary file that is then renamed over
the old one, so a crash mid-write never leaves a half-written snapshot.
"""

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from src.services.storage.interface import SnapshotStorageInterface, StorageError


_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """Snapshot storage backed by JSON files in a directory."""

    def __init__(self, directory):
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid store name: {key!r}")
        return self._directory / f"{key}.json"

    def _read(self, key: str) -> Optional[dict]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Snapshot {key} is not valid JSON: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {key}: {e}")

    def _write(self, key: str, data: dict) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to save snapshot {key}: {e}")

    def _delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete snapshot {key}: {e}")

    async def load_snapshot(self, key: str) -> Optional[dict]:
        return await asyncio.to_thread(self._read, key)

    async def save_snapshot(self, key: str, data: dict) -> bool:
        await asyncio.to_thread(self._write, key, data)
        return True

    async def delete_snapshot(self, key: str) -> bool:
        return await asyncio.to_thread(self._delete, key)


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Snapshot storage kept in a dict. Used by tests and dry runs."""

    def __init__(self):
        self.snapshots: dict[str, str] = {}

    async def load_snapshot(self, key: str) -> Optional[dict]:
        raw = self.snapshots.get(key)
        return json.loads(raw) if raw is not None else None

    async def save_snapshot(self, key: str, data: dict) -> bool:
        # Round-trip through JSON so callers can't share mutable state with the store
        self.snapshots[key] = json.dumps(data)
        return True

    async def delete_snapshot(self, key: str) -> bool:
        return self.snapshots.pop(key, None) is not None
