"""Asset lifecycle orchestration: upload on create, follow-up derivatives, cascade deletes."""

import os
import posixpath
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Protocol

from .logging import clear_asset_context, get_logger, set_asset_context
from .storage.base import LOCAL_BACKEND
from .storage.config import ConfigProvider
from .storage.registry import BackendRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssetProvenance:
    """Where an asset ended up. Written once at upload time."""

    backend_id: str
    original_local_path: str
    cloud_url: str

    @property
    def is_local(self) -> bool:
        return not self.backend_id or self.backend_id == LOCAL_BACKEND


@dataclass(frozen=True)
class Derivative:
    """A generated variant of an asset, e.g. a thumbnail.

    ``relative_path`` is usually a bare file name such as
    ``photo-150x150.png``. Only its file name is used: a derivative always
    sits in the same directory as its parent, locally and remotely.
    """

    relative_path: str
    label: str | None = None


class AssetStore(Protocol):
    """Host-side attachment records."""

    def get_local_path(self, asset_id: str) -> str | None: ...

    def get_public_url(self, asset_id: str) -> str | None: ...

    def set_public_url(self, asset_id: str, url: str) -> None: ...

    def get_derivatives(self, asset_id: str) -> list[Derivative]: ...

    def set_derivative_url(self, asset_id: str, derivative: Derivative, url: str) -> None: ...


class ProvenanceStore(Protocol):
    """Host-side persistence of AssetProvenance, keyed by asset id."""

    def put(self, asset_id: str, provenance: AssetProvenance) -> None: ...

    def get(self, asset_id: str) -> AssetProvenance | None: ...

    def delete(self, asset_id: str) -> None: ...


class AssetEventType(StrEnum):
    CREATED = "created"
    DERIVATIVES_GENERATED = "derivatives_generated"
    DELETED = "deleted"


@dataclass(frozen=True)
class AssetEvent:
    """Lifecycle notification from the host."""

    type: AssetEventType
    asset_id: str
    backend_id: str | None = None


def remote_path_for(local_path: str | Path, storage_root: str | Path) -> str | None:
    """Path of a file relative to the storage root, in POSIX form.

    Returns None when the file lies outside the root.
    """
    local = os.path.normpath(os.fspath(local_path))
    root = os.path.normpath(os.fspath(storage_root))
    try:
        relative = Path(local).relative_to(root)
    except ValueError:
        return None
    if relative == Path("."):
        return None
    return PurePosixPath(*relative.parts).as_posix()


def derivative_name(derivative: Derivative) -> str:
    """File name of a derivative.

    Raises:
        ValueError: If the path has no file name or climbs out with ``..``
    """
    parts = PurePosixPath(derivative.relative_path.replace("\\", "/")).parts
    if not parts or parts[-1] == "/" or ".." in parts:
        raise ValueError(f"Invalid derivative path: {derivative.relative_path!r}")
    return parts[-1]


def derivative_remote_path(parent_remote_path: str, derivative: Derivative) -> str:
    """Derivatives live next to their parent on every backend."""
    return posixpath.join(posixpath.dirname(parent_remote_path), derivative_name(derivative))


class UploadOrchestrator:
    """Reacts to asset lifecycle events.

    Failures never propagate: a failed upload leaves the asset served
    locally, a failed delete leaves the remote object behind.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        config: ConfigProvider,
        assets: AssetStore,
        provenance: ProvenanceStore,
        storage_root: str | Path,
    ):
        self.registry = registry
        self.config = config
        self.assets = assets
        self.provenance = provenance
        self.storage_root = Path(storage_root)

    def handle(self, event: AssetEvent) -> None:
        """Dispatch a lifecycle event to the matching transition."""
        if event.type == AssetEventType.CREATED:
            self.on_asset_created(event.asset_id, event.backend_id)
        elif event.type == AssetEventType.DERIVATIVES_GENERATED:
            self.on_derivatives_generated(event.asset_id)
        elif event.type == AssetEventType.DELETED:
            self.on_asset_deleted(event.asset_id)
        else:
            raise ValueError(f"Unknown asset event type: {event.type}")

    def on_asset_created(
        self, asset_id: str, backend_id: str | None = None
    ) -> AssetProvenance | None:
        """Upload a new asset to the requested (or default) backend.

        Args:
            asset_id: Host asset identifier
            backend_id: Requested backend; falls back to the configured default

        Returns:
            The provenance record when the asset went to a cloud backend,
            None when it stays local
        """
        requested = backend_id or self.config.get_default_backend()
        set_asset_context(asset_id, requested)
        try:
            adapter = self.registry.resolve(requested)
            if adapter is None:
                if requested != LOCAL_BACKEND:
                    logger.info("Backend not available, keeping asset local")
                return None

            existing = self.provenance.get(asset_id)
            if existing is not None:
                logger.info("Asset already has provenance, skipping upload")
                return existing

            local_path = self.assets.get_local_path(asset_id)
            if not local_path:
                logger.warning("Asset has no local file, keeping local")
                return None

            remote_path = remote_path_for(local_path, self.storage_root)
            if remote_path is None:
                logger.warning(
                    "Asset is outside the storage root, keeping local",
                    local_path=str(local_path),
                    storage_root=str(self.storage_root),
                )
                return None

            result = adapter.upload_file(local_path, remote_path)
            if not result.ok or not result.url:
                logger.warning("Cloud upload failed, keeping asset local", remote_path=remote_path)
                return None

            record = AssetProvenance(
                backend_id=str(requested),
                original_local_path=str(local_path),
                cloud_url=result.url,
            )
            self.provenance.put(asset_id, record)
            self.assets.set_public_url(asset_id, result.url)
            logger.info("Asset stored in the cloud", remote_path=remote_path, url=result.url)
            return record
        finally:
            clear_asset_context()

    def on_derivatives_generated(
        self, asset_id: str, derivatives: list[Derivative] | None = None
    ) -> dict[str, str]:
        """Upload derivatives to the backend their parent went to.

        Returns:
            Mapping of derivative relative path to cloud URL, for the
            derivatives that were uploaded
        """
        record = self.provenance.get(asset_id)
        if record is None or record.is_local:
            return {}

        set_asset_context(asset_id, record.backend_id)
        try:
            adapter = self.registry.resolve(record.backend_id)
            parent_remote = remote_path_for(record.original_local_path, self.storage_root)
            if adapter is None or parent_remote is None:
                logger.warning("Parent backend unavailable, derivatives stay local")
                return {}

            if derivatives is None:
                derivatives = self.assets.get_derivatives(asset_id)

            parent_dir = Path(record.original_local_path).parent
            uploaded: dict[str, str] = {}
            for derivative in derivatives:
                try:
                    remote_path = derivative_remote_path(parent_remote, derivative)
                except ValueError as e:
                    logger.warning("Skipping derivative", error=str(e))
                    continue

                local_file = parent_dir / posixpath.basename(remote_path)
                if not local_file.is_file():
                    logger.debug("Derivative file missing, skipping", path=str(local_file))
                    continue

                result = adapter.upload_file(local_file, remote_path)
                if not result.ok or not result.url:
                    logger.warning("Derivative upload failed", remote_path=remote_path)
                    continue

                self.assets.set_derivative_url(asset_id, derivative, result.url)
                uploaded[derivative.relative_path] = result.url

            return uploaded
        finally:
            clear_asset_context()

    def on_asset_deleted(self, asset_id: str) -> dict[str, bool]:
        """Delete the asset and all its derivatives from the cloud.

        Every delete is attempted regardless of the others' outcome.

        Returns:
            Mapping of remote path to whether its delete succeeded
        """
        record = self.provenance.get(asset_id)
        if record is None:
            return {}

        set_asset_context(asset_id, record.backend_id)
        try:
            if record.is_local:
                return {}

            adapter = self.registry.resolve(record.backend_id)
            primary = remote_path_for(record.original_local_path, self.storage_root)
            if adapter is None or primary is None:
                logger.warning("Backend unavailable, remote copies were not deleted")
                return {}

            derivatives = self.assets.get_derivatives(asset_id)
            outcomes = {primary: adapter.delete_file(primary)}
            for derivative in derivatives:
                try:
                    remote_path = derivative_remote_path(primary, derivative)
                except ValueError as e:
                    logger.warning("Skipping derivative delete", error=str(e))
                    continue
                outcomes[remote_path] = adapter.delete_file(remote_path)

            failed = [path for path, ok in outcomes.items() if not ok]
            if failed:
                logger.warning("Some remote deletes failed", failed=failed)
            return outcomes
        finally:
            self.provenance.delete(asset_id)
            clear_asset_context()

    def resolve_url(self, asset_id: str, local_url: str | None = None) -> str | None:
        """Public URL consumers should use for an asset."""
        record = self.provenance.get(asset_id)
        if record is not None and not record.is_local and record.cloud_url:
            return record.cloud_url
        if local_url is not None:
            return local_url
        return self.assets.get_public_url(asset_id)

