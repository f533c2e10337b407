"""
Configuration management for assetbridge
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    storage_config_path: str | None = None
    storage_root: str = "/var/www/uploads"  # Local root that remote paths are relative to
    imgur_metadata_path: str | None = None  # JSON file for Imgur delete hashes; in-memory if unset

    # Naming of new uploads
    filename_rule: str = "original"  # original, timestamp, md5, sha1, uuid
    directory_structure: str = "img/Y/m/d"

    # HTTP
    http_timeout: float = 30.0

    # Environment
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "ASSETBRIDGE_"
        case_sensitive = False
        extra = "ignore"


def get_settings() -> Settings:
    """Build settings from the environment.

    The core never reads settings implicitly; entry points call this once and
    pass the resulting values down.
    """
    return Settings()
