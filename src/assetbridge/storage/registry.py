"""Backend registry: the set of configured adapters plus the local fallback."""

from collections.abc import Iterator, Mapping
from typing import Any

import httpx

from ..logging import get_logger
from .base import DEFAULT_TIMEOUT, LOCAL_BACKEND, BackendKind, StorageAdapter
from .config import ConfigProvider
from .implementations import (
    AliyunOSSAdapter,
    GitHubJsDelivrAdapter,
    ImgurAdapter,
    R2Adapter,
    S3Adapter,
)
from .metadata import MetadataStore

logger = get_logger(__name__)

ADAPTER_TYPES: dict[str, type[StorageAdapter]] = {
    BackendKind.ALIYUN_OSS: AliyunOSSAdapter,
    BackendKind.AWS_S3: S3Adapter,
    BackendKind.CLOUDFLARE_R2: R2Adapter,
    BackendKind.GITHUB_JSDELIVR: GitHubJsDelivrAdapter,
    BackendKind.IMGUR: ImgurAdapter,
}

LOCAL_DISPLAY_NAME = "Local storage"


def create_storage_adapter(
    kind: str,
    config: Mapping[str, Any],
    metadata_store: MetadataStore | None = None,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> StorageAdapter:
    """Create a storage adapter instance from configuration.

    Args:
        kind: Backend identifier ('aliyun_oss', 'aws_s3', 'cloudflare_r2',
            'github_jsdelivr', 'imgur')
        config: Backend configuration fields
        metadata_store: Store for backends that track remote ids (Imgur)
        client: Shared HTTP client; each adapter creates its own if None
        timeout: Per-request timeout in seconds

    Returns:
        StorageAdapter instance

    Raises:
        ValueError: If the backend kind is unknown
    """
    adapter_type = ADAPTER_TYPES.get(kind)
    if adapter_type is None:
        raise ValueError(f"Unknown storage backend type: {kind}")

    if adapter_type is ImgurAdapter:
        return ImgurAdapter(config, metadata_store=metadata_store, client=client, timeout=timeout)
    return adapter_type(config, client=client, timeout=timeout)


class BackendRegistry:
    """Holds the enabled, configured adapters.

    ``local`` is always available and has no adapter; resolving it, an
    empty id, or an id that is not registered yields None, which callers
    treat as "keep the file local".
    """

    def __init__(self, adapters: Mapping[str, StorageAdapter] | None = None):
        self._adapters: dict[str, StorageAdapter] = dict(adapters or {})

    @classmethod
    def from_config(
        cls,
        config: ConfigProvider,
        metadata_store: MetadataStore | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "BackendRegistry":
        """Build the registry once from configuration.

        A backend is registered when it is enabled and its primary credential
        is set. Anything else is skipped, not reported as an error.
        """
        registry = cls()
        enabled = config.get_enabled_backends()

        for kind, adapter_type in ADAPTER_TYPES.items():
            if kind not in enabled:
                continue

            backend_config = config.get_backend_config(kind)
            if not (backend_config.get(adapter_type.primary_credential) or "").strip():
                logger.info(
                    f"Skipping backend {kind}: {adapter_type.primary_credential} is not set"
                )
                continue

            adapter = create_storage_adapter(
                kind, backend_config, metadata_store=metadata_store, client=client, timeout=timeout
            )
            registry.register(kind, adapter)
            logger.info(f"Registered storage backend: {kind}")

        return registry

    def register(self, backend_id: str, adapter: StorageAdapter) -> None:
        if backend_id == LOCAL_BACKEND:
            raise ValueError("The local backend cannot have an adapter")
        self._adapters[backend_id] = adapter

    def resolve(self, backend_id: str | None) -> StorageAdapter | None:
        """Return the adapter for an id, or None to use local storage."""
        if not backend_id or backend_id == LOCAL_BACKEND:
            return None
        return self._adapters.get(backend_id)

    def is_local(self, backend_id: str | None) -> bool:
        return self.resolve(backend_id) is None

    def enabled_ids(self) -> list[str]:
        return [LOCAL_BACKEND, *self._adapters]

    def available(self) -> dict[str, str]:
        """Display names of every known backend, registered or not."""
        names = {LOCAL_BACKEND: LOCAL_DISPLAY_NAME}
        names.update({str(kind): t.display_name for kind, t in ADAPTER_TYPES.items()})
        return names

    def close(self) -> None:
        for adapter in self._adapters.values():
            adapter.close()

    def __contains__(self, backend_id: object) -> bool:
        return backend_id == LOCAL_BACKEND or backend_id in self._adapters

    def __iter__(self) -> Iterator[str]:
        return iter(self.enabled_ids())

    def __len__(self) -> int:
        return len(self._adapters)
