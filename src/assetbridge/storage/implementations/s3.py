"""AWS S3 adapter using Signature Version 4 request signing."""

from abc import abstractmethod
from pathlib import Path

from ...logging import get_logger
from ..base import BackendKind, StorageAdapter
from ..signing import (
    EMPTY_PAYLOAD_SHA256,
    SigV4Credentials,
    amz_date,
    encode_path,
    payload_sha256,
    sigv4_headers,
)

logger = get_logger(__name__)


class SigV4Adapter(StorageAdapter):
    """Shared PUT/DELETE/GET flow for SigV4-signed object stores.

    Subclasses decide the host, region and how an object key maps onto a
    request path.
    """

    @property
    @abstractmethod
    def host(self) -> str:
        """Value of the ``Host`` header."""
        pass

    @property
    @abstractmethod
    def region(self) -> str:
        """Region the signature is scoped to."""
        pass

    def _object_path(self, key: str) -> str:
        """Absolute request path for an encoded object key."""
        return f"/{key}"

    def _connection_path(self) -> str:
        return "/"

    def _credentials(self) -> SigV4Credentials:
        return SigV4Credentials(
            access_key=self.config["access_key"],
            secret_key=self.config["access_secret"],
            region=self.region,
        )

    def _signed_headers(self, method: str, path: str, payload_hash: str) -> dict[str, str]:
        return sigv4_headers(
            self._credentials(),
            method,
            self.host,
            path,
            payload_hash,
            amz_date(self._now()),
        )

    def _upload(self, local_path: Path, remote_path: str) -> str:
        body = self._read_local_file(local_path)
        path = self._object_path(encode_path(remote_path))
        logger.debug("Uploading object", backend=self.kind.value, host=self.host, path=path)

        headers = self._signed_headers("PUT", path, payload_sha256(body))
        headers["Content-Type"] = self._guess_content_type(local_path)
        headers["Content-Length"] = str(len(body))

        response = self._send("PUT", f"https://{self.host}{path}", headers=headers, content=body)
        self._expect_status(response, 200)
        return self.get_file_url(remote_path)

    def _delete(self, remote_path: str) -> None:
        path = self._object_path(encode_path(remote_path))
        headers = self._signed_headers("DELETE", path, EMPTY_PAYLOAD_SHA256)
        response = self._send("DELETE", f"https://{self.host}{path}", headers=headers)
        self._expect_status(response, 200, 204)

    def _check_connection(self) -> None:
        path = self._connection_path()
        headers = self._signed_headers("GET", path, EMPTY_PAYLOAD_SHA256)
        response = self._send("GET", f"https://{self.host}{path}", headers=headers)
        self._expect_status(response, 200)

    def get_file_url(self, remote_path: str) -> str:
        prefixed = self._prefixed_url(remote_path)
        if prefixed:
            return prefixed
        return f"https://{self.host}{self._object_path(remote_path)}"


class S3Adapter(SigV4Adapter):
    """AWS S3 with virtual-hosted-style addressing."""

    kind = BackendKind.AWS_S3
    display_name = "AWS S3"
    required_fields = ("access_key", "access_secret", "bucket", "region")
    primary_credential = "access_key"

    @property
    def host(self) -> str:
        return f"{self.config['bucket']}.s3.{self.config['region']}.amazonaws.com"

    @property
    def region(self) -> str:
        return self.config["region"]
