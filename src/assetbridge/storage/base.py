"""Core storage interfaces shared by every backend adapter."""

import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar

import httpx

from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

LOCAL_BACKEND = "local"


class BackendKind(StrEnum):
    """Identifiers of the storage backends."""

    LOCAL = LOCAL_BACKEND
    ALIYUN_OSS = "aliyun_oss"
    AWS_S3 = "aws_s3"
    CLOUDFLARE_R2 = "cloudflare_r2"
    GITHUB_JSDELIVR = "github_jsdelivr"
    IMGUR = "imgur"


class ErrorKind(StrEnum):
    """Why an adapter call failed. Never surfaced past the adapter boundary."""

    CONFIG_INVALID = "config_invalid"
    LOCAL_FILE_UNREADABLE = "local_file_unreadable"
    TRANSPORT_ERROR = "transport_error"
    REMOTE_REJECTED = "remote_rejected"
    PROTOCOL_MISMATCH = "protocol_mismatch"


class StorageException(Exception):
    """Base exception for storage operations."""

    kind: ClassVar[ErrorKind]


class ConfigInvalidError(StorageException):
    """A required configuration field is empty."""

    kind = ErrorKind.CONFIG_INVALID


class LocalFileUnreadableError(StorageException):
    """The local file is missing or cannot be read."""

    kind = ErrorKind.LOCAL_FILE_UNREADABLE


class TransportError(StorageException):
    """Network failure or timeout."""

    kind = ErrorKind.TRANSPORT_ERROR


class RemoteRejectedError(StorageException):
    """The backend answered with a non-success status code."""

    kind = ErrorKind.REMOTE_REJECTED

    def __init__(self, status_code: int, expected: tuple[int, ...]):
        super().__init__(f"Unexpected status {status_code}, expected one of {list(expected)}")
        self.status_code = status_code


class ProtocolMismatchError(StorageException):
    """A field the protocol requires is missing from the response or local state."""

    kind = ErrorKind.PROTOCOL_MISMATCH


@dataclass(frozen=True)
class UploadResult:
    """Outcome of an upload. Callers only look at ``ok`` and ``url``."""

    url: str | None = None
    error: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def failed(cls, error: ErrorKind) -> "UploadResult":
        return cls(url=None, error=error)


class StorageAdapter(ABC):
    """Abstract base class for all storage backend adapters.

    Subclasses implement ``_upload``, ``_delete``, ``_check_connection`` and
    ``get_file_url`` and raise ``StorageException`` subclasses on failure.
    The public methods collapse those exceptions into a plain success flag.
    """

    kind: ClassVar[BackendKind]
    display_name: ClassVar[str]
    required_fields: ClassVar[tuple[str, ...]]
    primary_credential: ClassVar[str]
    default_config: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        config: Mapping[str, Any],
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        merged = {**self.default_config, **dict(config)}
        self.config: dict[str, str] = {
            key: "" if value is None else str(value).strip() for key, value in merged.items()
        }
        self.timeout = timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self._client = client
        self._owns_client = client is None

    def validate_config(self) -> bool:
        """Return True iff every required field is non-empty."""
        return all(self.config.get(name) for name in self.required_fields)

    def upload_file(self, local_path: str | Path, remote_path: str) -> UploadResult:
        """Upload a local file and return its public URL on success."""
        try:
            self._require_config()
            url = self._upload(Path(local_path), remote_path)
        except StorageException as e:
            logger.warning(
                "Upload failed",
                backend=self.kind.value,
                remote_path=remote_path,
                error_kind=e.kind.value,
                error=str(e),
            )
            return UploadResult.failed(e.kind)

        logger.info("Upload succeeded", backend=self.kind.value, remote_path=remote_path, url=url)
        return UploadResult(url=url)

    def try_delete(self, remote_path: str) -> ErrorKind | None:
        """Delete a remote object, returning the failure kind or None on success."""
        try:
            self._require_config()
            self._delete(remote_path)
        except StorageException as e:
            logger.warning(
                "Delete failed",
                backend=self.kind.value,
                remote_path=remote_path,
                error_kind=e.kind.value,
                error=str(e),
            )
            return e.kind

        logger.info("Delete succeeded", backend=self.kind.value, remote_path=remote_path)
        return None

    def delete_file(self, remote_path: str) -> bool:
        """Delete a remote object."""
        return self.try_delete(remote_path) is None

    def test_connection(self) -> bool:
        """Issue a minimal authenticated read against the backend."""
        try:
            self._require_config()
            self._check_connection()
        except StorageException as e:
            logger.warning(
                "Connection test failed",
                backend=self.kind.value,
                error_kind=e.kind.value,
                error=str(e),
            )
            return False
        return True

    @abstractmethod
    def get_file_url(self, remote_path: str) -> str:
        """Resolve the public URL of a remote path."""
        pass

    @abstractmethod
    def _upload(self, local_path: Path, remote_path: str) -> str:
        """Upload and return the public URL, raising StorageException on failure."""
        pass

    @abstractmethod
    def _delete(self, remote_path: str) -> None:
        """Delete, raising StorageException on failure."""
        pass

    @abstractmethod
    def _check_connection(self) -> None:
        """Connectivity check, raising StorageException on failure."""
        pass

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
            self._owns_client = True
        return self._client

    def _require_config(self) -> None:
        if not self.validate_config():
            missing = [name for name in self.required_fields if not self.config.get(name)]
            raise ConfigInvalidError(f"{self.kind.value} is not configured, missing: {missing}")

    def _now(self) -> datetime:
        return self._clock()

    def _prefixed_url(self, remote_path: str) -> str | None:
        prefix = self.config.get("url_prefix")
        if prefix:
            return f"{prefix.rstrip('/')}/{remote_path}"
        return None

    def _read_local_file(self, local_path: Path) -> bytes:
        try:
            return local_path.read_bytes()
        except OSError as e:
            raise LocalFileUnreadableError(f"Cannot read {local_path}: {e}") from e

    @staticmethod
    def _guess_content_type(local_path: Path) -> str:
        content_type, _ = mimetypes.guess_type(local_path.name)
        return content_type or "application/octet-stream"

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request. Transport failures become TransportError."""
        try:
            return self._get_client().request(method, url, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _expect_status(response: httpx.Response, *expected: int) -> None:
        if response.status_code not in expected:
            raise RemoteRejectedError(response.status_code, expected)

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ProtocolMismatchError(f"Response is not JSON: {e}") from e
        if not isinstance(body, dict):
            raise ProtocolMismatchError("Response JSON is not an object")
        return body
