"""Aliyun OSS adapter using bucket-domain HMAC-SHA1 request signing."""

from pathlib import Path

from ...logging import get_logger
from ..base import BackendKind, StorageAdapter
from ..signing import content_md5, encode_path, http_date, oss_authorization

logger = get_logger(__name__)


class AliyunOSSAdapter(StorageAdapter):
    """Aliyun Object Storage Service, addressed as ``<bucket>.<endpoint>``."""

    kind = BackendKind.ALIYUN_OSS
    display_name = "Aliyun OSS"
    required_fields = ("access_key", "access_secret", "bucket", "endpoint")
    primary_credential = "access_key"

    @property
    def host(self) -> str:
        return f"{self.config['bucket']}.{self.config['endpoint']}"

    def _resource(self, remote_path: str) -> str:
        # Signed over the raw object key; only the request URL is encoded
        return f"/{self.config['bucket']}/{remote_path}"

    def _headers(
        self, method: str, resource: str, md5: str = "", content_type: str = ""
    ) -> dict[str, str]:
        date = http_date(self._now())
        headers = {"Host": self.host, "Date": date}
        if content_type:
            headers["Content-Type"] = content_type
        if md5:
            headers["Content-MD5"] = md5
        headers["Authorization"] = oss_authorization(
            self.config["access_key"],
            self.config["access_secret"],
            method,
            resource,
            date,
            content_md5=md5,
            content_type=content_type,
        )
        return headers

    def _upload(self, local_path: Path, remote_path: str) -> str:
        body = self._read_local_file(local_path)
        content_type = self._guess_content_type(local_path)
        key = encode_path(remote_path)
        logger.debug("Uploading to OSS", host=self.host, key=key, size=len(body))

        headers = self._headers(
            "PUT", self._resource(remote_path), content_md5(body), content_type
        )
        headers["Content-Length"] = str(len(body))

        response = self._send("PUT", f"https://{self.host}/{key}", headers=headers, content=body)
        self._expect_status(response, 200)
        return self.get_file_url(remote_path)

    def _delete(self, remote_path: str) -> None:
        key = encode_path(remote_path)
        headers = self._headers("DELETE", self._resource(remote_path))
        response = self._send("DELETE", f"https://{self.host}/{key}", headers=headers)
        self._expect_status(response, 200, 204)

    def _check_connection(self) -> None:
        headers = self._headers("GET", self._resource(""))
        response = self._send("GET", f"https://{self.host}/", headers=headers)
        self._expect_status(response, 200)

    def get_file_url(self, remote_path: str) -> str:
        prefixed = self._prefixed_url(remote_path)
        if prefixed:
            return prefixed
        return f"https://{self.host}/{remote_path}"
