"""Imgur adapter. Deletion is authorized by a one-time delete hash."""

import base64
import posixpath
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from ...logging import get_logger
from ..base import DEFAULT_TIMEOUT, BackendKind, ProtocolMismatchError, StorageAdapter
from ..metadata import InMemoryMetadataStore, MetadataStore

logger = get_logger(__name__)

IMGUR_API_BASE = "https://api.imgur.com/3"
IMGUR_IMAGE_BASE = "https://i.imgur.com"

UPLOAD_TITLE = "Uploaded via assetbridge"


class ImgurAdapter(StorageAdapter):
    """Imgur image hosting.

    Imgur assigns its own id to every upload and only lets the uploader
    delete it with the ``deletehash`` returned at upload time. Both are
    recorded in the metadata store under the remote path; losing that record
    makes the image undeletable through this adapter.
    """

    kind = BackendKind.IMGUR
    display_name = "Imgur"
    required_fields = ("client_id",)
    primary_credential = "client_id"

    def __init__(
        self,
        config: Mapping[str, Any],
        metadata_store: MetadataStore | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(config, client=client, timeout=timeout, clock=clock)
        if metadata_store is None:
            logger.warning(
                "Imgur adapter has no persistent metadata store; "
                "delete hashes will not survive a restart"
            )
            metadata_store = InMemoryMetadataStore()
        self.metadata_store = metadata_store

    def _headers(self) -> dict[str, str]:
        if self.config.get("access_token"):
            return {"Authorization": f"Bearer {self.config['access_token']}"}
        return {"Authorization": f"Client-ID {self.config['client_id']}"}

    def _load_record(self, remote_path: str) -> dict[str, Any] | None:
        try:
            return self.metadata_store.get(remote_path)
        except (OSError, ValueError) as e:
            raise ProtocolMismatchError(
                f"Cannot read Imgur metadata for {remote_path}: {e}"
            ) from e

    def _save_record(self, remote_path: str, record: dict[str, Any]) -> None:
        try:
            self.metadata_store.put(remote_path, record)
        except (OSError, ValueError) as e:
            raise ProtocolMismatchError(
                f"Cannot store Imgur metadata for {remote_path}: {e}"
            ) from e

    def _drop_record(self, remote_path: str) -> None:
        try:
            self.metadata_store.delete(remote_path)
        except (OSError, ValueError) as e:
            raise ProtocolMismatchError(
                f"Cannot remove Imgur metadata for {remote_path}: {e}"
            ) from e

    def _with_prefix(self, link: str) -> str:
        prefix = self.config.get("url_prefix")
        if prefix:
            return f"{prefix.rstrip('/')}/{posixpath.basename(link)}"
        return link

    def _upload(self, local_path: Path, remote_path: str) -> str:
        body = self._read_local_file(local_path)
        headers = self._headers()
        headers["Content-Type"] = "application/x-www-form-urlencoded"

        response = self._send(
            "POST",
            f"{IMGUR_API_BASE}/image",
            headers=headers,
            data={
                "image": base64.b64encode(body).decode("ascii"),
                "type": "base64",
                "name": local_path.name,
                "title": UPLOAD_TITLE,
                "description": remote_path,
            },
        )
        self._expect_status(response, 200)

        data = self._json_body(response).get("data") or {}
        link = data.get("link")
        image_id = data.get("id")
        deletehash = data.get("deletehash")
        if not link or not image_id or not deletehash:
            raise ProtocolMismatchError(
                f"Imgur response for {remote_path} is missing link, id or deletehash"
            )

        # Without this record the image can never be deleted through the adapter
        self._save_record(remote_path, {"id": image_id, "deletehash": deletehash, "link": link})
        return self._with_prefix(link)

    def _delete(self, remote_path: str) -> None:
        record = self._load_record(remote_path)
        if not record or not record.get("deletehash"):
            raise ProtocolMismatchError(f"No Imgur delete hash recorded for {remote_path}")

        response = self._send(
            "DELETE", f"{IMGUR_API_BASE}/image/{record['deletehash']}", headers=self._headers()
        )
        self._expect_status(response, 200)
        self._drop_record(remote_path)

    def _check_connection(self) -> None:
        response = self._send("GET", f"{IMGUR_API_BASE}/credits", headers=self._headers())
        self._expect_status(response, 200)

    def get_file_url(self, remote_path: str) -> str:
        try:
            record = self._load_record(remote_path)
        except ProtocolMismatchError as e:
            logger.warning("Cannot resolve Imgur URL", remote_path=remote_path, error=str(e))
            return ""
        if not record or not record.get("id"):
            return ""
        link = record.get("link") or f"{IMGUR_IMAGE_BASE}/{record['id']}.jpg"
        return self._with_prefix(link)
