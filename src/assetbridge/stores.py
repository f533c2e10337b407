"""In-memory AssetStore and ProvenanceStore implementations.

Hosts normally back these with their own attachment tables. These versions
serve the CLI and tests.
"""

import threading
from dataclasses import dataclass, field

from .orchestrator import AssetProvenance, Derivative


@dataclass
class AssetRecord:
    local_path: str
    public_url: str
    derivatives: list[Derivative] = field(default_factory=list)
    derivative_urls: dict[str, str] = field(default_factory=dict)


class InMemoryAssetStore:
    def __init__(self):
        self._assets: dict[str, AssetRecord] = {}
        self._lock = threading.Lock()

    def add(
        self,
        asset_id: str,
        local_path: str,
        public_url: str,
        derivatives: list[Derivative] | None = None,
    ) -> AssetRecord:
        record = AssetRecord(local_path, public_url, list(derivatives or []))
        with self._lock:
            self._assets[asset_id] = record
        return record

    def remove(self, asset_id: str) -> None:
        with self._lock:
            self._assets.pop(asset_id, None)

    def record(self, asset_id: str) -> AssetRecord | None:
        return self._assets.get(asset_id)

    def get_local_path(self, asset_id: str) -> str | None:
        record = self._assets.get(asset_id)
        return record.local_path if record else None

    def get_public_url(self, asset_id: str) -> str | None:
        record = self._assets.get(asset_id)
        return record.public_url if record else None

    def set_public_url(self, asset_id: str, url: str) -> None:
        with self._lock:
            self._assets[asset_id].public_url = url

    def get_derivatives(self, asset_id: str) -> list[Derivative]:
        record = self._assets.get(asset_id)
        return list(record.derivatives) if record else []

    def set_derivative_url(self, asset_id: str, derivative: Derivative, url: str) -> None:
        with self._lock:
            self._assets[asset_id].derivative_urls[derivative.relative_path] = url


class InMemoryProvenanceStore:
    def __init__(self):
        self._records: dict[str, AssetProvenance] = {}
        self._lock = threading.Lock()

    def put(self, asset_id: str, provenance: AssetProvenance) -> None:
        with self._lock:
            # Provenance is immutable once written
            self._records.setdefault(asset_id, provenance)

    def get(self, asset_id: str) -> AssetProvenance | None:
        return self._records.get(asset_id)

    def delete(self, asset_id: str) -> None:
        with self._lock:
            self._records.pop(asset_id, None)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._records

    def __len__(self) -> int:
        return len(self._records)
