"""Storage backends for assetbridge.

This module provides interchangeable adapters for:
- Aliyun OSS (HMAC-SHA1 bucket-domain signing)
- AWS S3 and Cloudflare R2 (Signature Version 4)
- GitHub repositories served through jsDelivr
- Imgur, with delete hashes kept in a metadata store

Main components:
- StorageAdapter: Abstract base class for backend adapters
- BackendRegistry: Enabled adapters plus the local fallback
- MetadataStore: Keyed persistence used by the Imgur adapter
"""

from .base import (
    LOCAL_BACKEND,
    BackendKind,
    ConfigInvalidError,
    ErrorKind,
    LocalFileUnreadableError,
    ProtocolMismatchError,
    RemoteRejectedError,
    StorageAdapter,
    StorageException,
    TransportError,
    UploadResult,
)
from .config import (
    ConfigProvider,
    StorageConfig,
    create_example_config,
    load_storage_config,
)
from .metadata import InMemoryMetadataStore, JsonFileMetadataStore, MetadataStore
from .registry import BackendRegistry, create_storage_adapter

__all__ = [
    # Base classes and results
    "StorageAdapter",
    "UploadResult",
    "BackendKind",
    "ErrorKind",
    "LOCAL_BACKEND",
    # Exceptions
    "StorageException",
    "ConfigInvalidError",
    "LocalFileUnreadableError",
    "TransportError",
    "RemoteRejectedError",
    "ProtocolMismatchError",
    # Registry
    "BackendRegistry",
    "create_storage_adapter",
    # Metadata
    "MetadataStore",
    "InMemoryMetadataStore",
    "JsonFileMetadataStore",
    # Configuration
    "ConfigProvider",
    "StorageConfig",
    "load_storage_config",
    "create_example_config",
]
