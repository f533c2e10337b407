"""Storage configuration system."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from .base import LOCAL_BACKEND, BackendKind

# Fields every backend understands, with their defaults
DEFAULT_BACKEND_CONFIGS: dict[str, dict[str, str]] = {
    BackendKind.ALIYUN_OSS: {
        "access_key": "",
        "access_secret": "",
        "bucket": "",
        "endpoint": "",
        "url_prefix": "",
    },
    BackendKind.AWS_S3: {
        "access_key": "",
        "access_secret": "",
        "bucket": "",
        "region": "",
        "url_prefix": "",
    },
    BackendKind.CLOUDFLARE_R2: {
        "account_id": "",
        "access_key": "",
        "access_secret": "",
        "bucket": "",
        "url_prefix": "",
    },
    BackendKind.GITHUB_JSDELIVR: {
        "token": "",
        "repo": "",
        "branch": "main",
        "path": "images",
        "url_prefix": "",
    },
    BackendKind.IMGUR: {
        "client_id": "",
        "access_token": "",
        "url_prefix": "",
    },
}


class ConfigProvider(Protocol):
    """What the registry and orchestrator need to know about configuration."""

    def get_backend_config(self, kind: str) -> dict[str, str]: ...

    def get_enabled_backends(self) -> set[str]: ...

    def get_default_backend(self) -> str: ...


@dataclass
class StorageConfig:
    """Configuration for the storage backends."""

    default_backend: str = LOCAL_BACKEND
    enabled_backends: set[str] = field(default_factory=lambda: {LOCAL_BACKEND})
    backends: dict[str, dict[str, str]] = field(default_factory=dict)

    def __post_init__(self):
        # Local storage can never be disabled
        self.enabled_backends = {str(b).strip() for b in self.enabled_backends if b} | {
            LOCAL_BACKEND
        }
        self.default_backend = (self.default_backend or LOCAL_BACKEND).strip()

    def get_backend_config(self, kind: str) -> dict[str, str]:
        merged = {**DEFAULT_BACKEND_CONFIGS.get(kind, {}), **self.backends.get(kind, {})}
        return {key: "" if value is None else str(value) for key, value in merged.items()}

    def get_enabled_backends(self) -> set[str]:
        return set(self.enabled_backends)

    def get_default_backend(self) -> str:
        return self.default_backend


def load_storage_config(
    config_path: Path | None = None, env_prefix: str = "ASSETBRIDGE_STORAGE_"
) -> StorageConfig:
    """Load storage configuration from file and environment variables.

    Args:
        config_path: Path to YAML configuration file
        env_prefix: Prefix for environment variable overrides

    Returns:
        StorageConfig instance
    """
    config_data: dict[str, Any] = {
        "default_backend": LOCAL_BACKEND,
        "enabled_backends": [LOCAL_BACKEND],
        "backends": {},
    }

    # Load from YAML file if provided
    if config_path and config_path.exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to load storage config from {config_path}: {e}") from e
        if file_config.get("storage"):
            config_data.update(file_config["storage"])

    config_data = _apply_env_overrides(config_data, env_prefix)

    backends = {
        str(name): {k: "" if v is None else str(v) for k, v in (fields or {}).items()}
        for name, fields in (config_data.get("backends") or {}).items()
    }

    return StorageConfig(
        default_backend=config_data.get("default_backend") or LOCAL_BACKEND,
        enabled_backends=set(config_data.get("enabled_backends") or []),
        backends=backends,
    )


def _apply_env_overrides(config_data: dict[str, Any], env_prefix: str) -> dict[str, Any]:
    """Apply environment variable overrides to configuration."""

    default_backend = os.getenv(f"{env_prefix}DEFAULT_BACKEND")
    if default_backend:
        config_data["default_backend"] = default_backend

    enabled = os.getenv(f"{env_prefix}ENABLED_BACKENDS")
    if enabled:
        config_data["enabled_backends"] = [b.strip() for b in enabled.split(",") if b.strip()]

    # Backend-specific overrides, e.g. ASSETBRIDGE_STORAGE_AWS_S3_ACCESS_KEY
    backends = config_data.setdefault("backends", {}) or {}
    for backend, fields in DEFAULT_BACKEND_CONFIGS.items():
        for field_name in fields:
            value = os.getenv(f"{env_prefix}{backend.upper()}_{field_name.upper()}")
            if value is not None:
                backends.setdefault(str(backend), {})[field_name] = value
    config_data["backends"] = backends

    return config_data


def create_example_config() -> str:
    """Create an example storage configuration YAML."""

    config = {
        "storage": {
            "default_backend": "aws_s3",
            "enabled_backends": ["local", "aws_s3", "github_jsdelivr", "imgur"],
            "backends": {
                "aliyun_oss": {
                    "access_key": "${OSS_ACCESS_KEY_ID}",
                    "access_secret": "${OSS_ACCESS_KEY_SECRET}",
                    "bucket": "my-images",
                    "endpoint": "oss-cn-hangzhou.aliyuncs.com",
                    "url_prefix": "",
                },
                "aws_s3": {
                    "access_key": "${AWS_ACCESS_KEY_ID}",
                    "access_secret": "${AWS_SECRET_ACCESS_KEY}",
                    "bucket": "my-images",
                    "region": "us-west-2",
                    "url_prefix": "https://cdn.example.com",
                },
                "cloudflare_r2": {
                    "account_id": "${R2_ACCOUNT_ID}",
                    "access_key": "${R2_ACCESS_KEY_ID}",
                    "access_secret": "${R2_SECRET_ACCESS_KEY}",
                    "bucket": "my-images",
                    "url_prefix": "https://images.example.com",
                },
                "github_jsdelivr": {
                    "token": "${GITHUB_TOKEN}",
                    "repo": "octocat/images",
                    "branch": "main",
                    "path": "images",
                },
                "imgur": {
                    "client_id": "${IMGUR_CLIENT_ID}",
                    "access_token": "",
                },
            },
        }
    }

    return yaml.dump(config, default_flow_style=False, indent=2, sort_keys=False)
