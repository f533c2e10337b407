"""GitHub contents API adapter, served through the jsDelivr CDN."""

import base64
from pathlib import Path
from typing import Any

import httpx

from ... import __version__
from ...logging import get_logger
from ..base import BackendKind, ProtocolMismatchError, StorageAdapter
from ..signing import encode_path

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"
JSDELIVR_BASE = "https://cdn.jsdelivr.net/gh"

UPLOAD_COMMIT_MESSAGE = "Upload image via assetbridge"
DELETE_COMMIT_MESSAGE = "Delete image via assetbridge"


class GitHubJsDelivrAdapter(StorageAdapter):
    """Stores files as commits in a GitHub repository.

    Deleting is a two-step protocol: read the file to learn its blob SHA,
    then issue the delete quoting that SHA. GitHub rejects deletes and
    overwrites that do not name the current SHA.
    """

    kind = BackendKind.GITHUB_JSDELIVR
    display_name = "GitHub + jsDelivr"
    required_fields = ("token", "repo", "branch", "path")
    primary_credential = "token"
    default_config = {"branch": "main", "path": "images"}

    @property
    def base_path(self) -> str:
        return self.config["path"].strip("/")

    def _contents_url(self, remote_path: str) -> str:
        return (
            f"{GITHUB_API_BASE}/repos/{self.config['repo']}/contents/"
            f"{encode_path(self.base_path)}/{encode_path(remote_path)}"
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.config['token']}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"assetbridge/{__version__}",
        }

    def _current_sha(self, remote_path: str) -> str:
        """Read step: fetch the blob SHA GitHub requires for updates and deletes."""
        response = self._send("GET", self._contents_url(remote_path), headers=self._headers())
        self._expect_status(response, 200)
        sha = self._json_body(response).get("sha")
        if not sha:
            raise ProtocolMismatchError(f"No sha in contents response for {remote_path}")
        return sha

    def _put_contents(
        self, remote_path: str, encoded: str, sha: str | None = None
    ) -> httpx.Response:
        payload: dict[str, Any] = {
            "message": UPLOAD_COMMIT_MESSAGE,
            "content": encoded,
            "branch": self.config["branch"],
        }
        if sha:
            payload["sha"] = sha
        return self._send(
            "PUT", self._contents_url(remote_path), headers=self._headers(), json=payload
        )

    def _upload(self, local_path: Path, remote_path: str) -> str:
        encoded = base64.b64encode(self._read_local_file(local_path)).decode("ascii")

        response = self._put_contents(remote_path, encoded)
        if response.status_code == 422:
            # The file already exists; overwrite it by naming its current blob
            logger.info("File exists on GitHub, updating", remote_path=remote_path)
            response = self._put_contents(remote_path, encoded, self._current_sha(remote_path))

        self._expect_status(response, 201, 200)
        content = self._json_body(response).get("content") or {}
        if not content.get("sha"):
            raise ProtocolMismatchError(f"No content.sha in upload response for {remote_path}")
        return self.get_file_url(remote_path)

    def _delete(self, remote_path: str) -> None:
        sha = self._current_sha(remote_path)
        response = self._send(
            "DELETE",
            self._contents_url(remote_path),
            headers=self._headers(),
            json={
                "message": DELETE_COMMIT_MESSAGE,
                "sha": sha,
                "branch": self.config["branch"],
            },
        )
        self._expect_status(response, 200)

    def _check_connection(self) -> None:
        response = self._send(
            "GET", f"{GITHUB_API_BASE}/repos/{self.config['repo']}", headers=self._headers()
        )
        self._expect_status(response, 200)

    def get_file_url(self, remote_path: str) -> str:
        prefixed = self._prefixed_url(remote_path)
        if prefixed:
            return prefixed
        return (
            f"{JSDELIVR_BASE}/{self.config['repo']}@{self.config['branch']}/"
            f"{self.base_path}/{remote_path}"
        )

