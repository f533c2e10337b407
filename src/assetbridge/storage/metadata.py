"""Keyed metadata persistence for backends that cannot delete by path."""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from ..logging import get_logger

logger = get_logger(__name__)


class MetadataStore(Protocol):
    """Mapping of remote path to a backend-specific record."""

    def get(self, remote_path: str) -> dict[str, Any] | None:
        """Return the record for a remote path, or None if there is none."""
        ...

    def put(self, remote_path: str, record: dict[str, Any]) -> None:
        """Create or replace the record for a remote path."""
        ...

    def delete(self, remote_path: str) -> None:
        """Remove the record for a remote path. Missing keys are ignored."""
        ...


class InMemoryMetadataStore:
    """Process-local metadata store."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None):
        self._records: dict[str, dict[str, Any]] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, remote_path: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get(remote_path)
            return dict(record) if record is not None else None

    def put(self, remote_path: str, record: dict[str, Any]) -> None:
        with self._lock:
            self._records[remote_path] = dict(record)

    def delete(self, remote_path: str) -> None:
        with self._lock:
            self._records.pop(remote_path, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonFileMetadataStore:
    """Metadata store persisted as a single JSON object on disk.

    Every mutation re-reads the file, applies the change to one key and
    replaces the file atomically, so concurrent writers in this process never
    clobber each other's unrelated keys.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt metadata file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Metadata file {self.path} does not hold a JSON object")
        return data

    def _save(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, remote_path: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._load().get(remote_path)
            return dict(record) if record is not None else None

    def put(self, remote_path: str, record: dict[str, Any]) -> None:
        with self._lock:
            data = self._load()
            data[remote_path] = dict(record)
            self._save(data)
        logger.debug("Stored metadata", remote_path=remote_path, path=str(self.path))

    def delete(self, remote_path: str) -> None:
        with self._lock:
            data = self._load()
            if remote_path in data:
                del data[remote_path]
                self._save(data)
