"""
assetbridge
Delegate storage of uploaded assets to interchangeable cloud backends
"""

__version__ = "0.1.0"

from .orchestrator import (
    AssetEvent,
    AssetEventType,
    AssetProvenance,
    Derivative,
    UploadOrchestrator,
)
from .storage import BackendRegistry, StorageConfig, load_storage_config

__all__ = [
    "__version__",
    "UploadOrchestrator",
    "AssetProvenance",
    "AssetEvent",
    "AssetEventType",
    "Derivative",
    "BackendRegistry",
    "StorageConfig",
    "load_storage_config",
]
