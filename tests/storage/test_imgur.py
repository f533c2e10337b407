"""Tests for the Imgur adapter and its delete-hash bookkeeping."""

from urllib.parse import parse_qs

import httpx
import pytest

from assetbridge.storage.base import ErrorKind
from assetbridge.storage.implementations.imgur import ImgurAdapter
from assetbridge.storage.metadata import InMemoryMetadataStore, JsonFileMetadataStore

UPLOAD_RESPONSE = {
    "data": {"id": "abc", "deletehash": "dh123", "link": "https://i.imgur.com/abc.png"},
    "success": True,
    "status": 200,
}


@pytest.fixture
def store():
    return InMemoryMetadataStore()


class TestImgurUpload:
    def test_upload_records_delete_hash(self, mock_http, store, image_file):
        http = mock_http(lambda request: httpx.Response(200, json=UPLOAD_RESPONSE))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.url == "https://i.imgur.com/abc.png"
        assert store.get("img/a.png") == {
            "id": "abc",
            "deletehash": "dh123",
            "link": "https://i.imgur.com/abc.png",
        }

        [request] = http.requests
        assert request.method == "POST"
        assert str(request.url) == "https://api.imgur.com/3/image"
        assert request.headers["authorization"] == "Client-ID cid"
        form = parse_qs(request.content.decode())
        assert form["type"] == ["base64"]
        assert form["name"] == ["a.png"]

    def test_access_token_takes_precedence(self, mock_http, store, image_file):
        http = mock_http(lambda request: httpx.Response(200, json=UPLOAD_RESPONSE))
        adapter = ImgurAdapter(
            {"client_id": "cid", "access_token": "tok"}, metadata_store=store, client=http.client
        )

        adapter.upload_file(image_file, "img/a.png")

        assert http.requests[0].headers["authorization"] == "Bearer tok"

    def test_upload_with_url_prefix(self, mock_http, store, image_file):
        http = mock_http(lambda request: httpx.Response(200, json=UPLOAD_RESPONSE))
        adapter = ImgurAdapter(
            {"client_id": "cid", "url_prefix": "https://img.example.com/"},
            metadata_store=store,
            client=http.client,
        )

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.url == "https://img.example.com/abc.png"
        assert adapter.get_file_url("img/a.png") == "https://img.example.com/abc.png"

    def test_upload_response_without_deletehash(self, mock_http, store, image_file):
        body = {"data": {"id": "abc", "link": "https://i.imgur.com/abc.png"}}
        http = mock_http(lambda request: httpx.Response(200, json=body))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.error == ErrorKind.PROTOCOL_MISMATCH
        assert len(store) == 0

    def test_upload_rejected(self, mock_http, store, image_file):
        http = mock_http(lambda request: httpx.Response(429, json={"success": False}))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        assert adapter.upload_file(image_file, "img/a.png").error == ErrorKind.REMOTE_REJECTED
        assert len(store) == 0


class TestImgurDelete:
    def test_delete_uses_recorded_hash(self, mock_http, store):
        store.put("img/a.png", UPLOAD_RESPONSE["data"])
        http = mock_http(lambda request: httpx.Response(200, json={"success": True}))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        assert adapter.delete_file("img/a.png") is True

        [request] = http.requests
        assert request.method == "DELETE"
        assert str(request.url) == "https://api.imgur.com/3/image/dh123"
        assert store.get("img/a.png") is None
        assert adapter.get_file_url("img/a.png") == ""

    def test_delete_without_record(self, mock_http, store):
        http = mock_http(lambda request: httpx.Response(200))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        assert adapter.try_delete("img/a.png") == ErrorKind.PROTOCOL_MISMATCH
        assert http.requests == []

    def test_failed_delete_keeps_record(self, mock_http, store):
        store.put("img/a.png", UPLOAD_RESPONSE["data"])
        http = mock_http(lambda request: httpx.Response(403))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        assert adapter.delete_file("img/a.png") is False
        assert store.get("img/a.png") is not None


class TestImgurUrl:
    def test_unknown_path(self, store):
        assert ImgurAdapter({"client_id": "cid"}, metadata_store=store).get_file_url("x") == ""

    def test_record_without_link(self, store):
        store.put("img/a.png", {"id": "abc", "deletehash": "dh"})
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store)

        assert adapter.get_file_url("img/a.png") == "https://i.imgur.com/abc.jpg"

    def test_default_store_is_in_memory(self):
        adapter = ImgurAdapter({"client_id": "cid"})
        assert isinstance(adapter.metadata_store, InMemoryMetadataStore)


class TestImgurConnection:
    def test_connection(self, mock_http, store):
        http = mock_http(lambda request: httpx.Response(200, json={"data": {}}))
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=store, client=http.client)

        assert adapter.test_connection() is True
        assert str(http.requests[0].url) == "https://api.imgur.com/3/credits"


class TestImgurMetadataFailures:
    @pytest.fixture
    def corrupt_store(self, tmp_path):
        path = tmp_path / "imgur.json"
        path.write_text("{not json")
        return JsonFileMetadataStore(path)

    def test_unwritable_store_fails_upload(self, mock_http, tmp_path, image_file):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        http = mock_http(lambda request: httpx.Response(200, json=UPLOAD_RESPONSE))
        adapter = ImgurAdapter(
            {"client_id": "cid"},
            metadata_store=JsonFileMetadataStore(blocker / "imgur.json"),
            client=http.client,
        )

        result = adapter.upload_file(image_file, "img/a.png")

        assert not result.ok
        assert result.error == ErrorKind.PROTOCOL_MISMATCH

    def test_corrupt_store_fails_delete(self, mock_http, corrupt_store):
        http = mock_http(lambda request: httpx.Response(200))
        adapter = ImgurAdapter(
            {"client_id": "cid"}, metadata_store=corrupt_store, client=http.client
        )

        assert adapter.try_delete("img/a.png") == ErrorKind.PROTOCOL_MISMATCH
        assert http.requests == []

    def test_corrupt_store_has_no_url(self, corrupt_store):
        adapter = ImgurAdapter({"client_id": "cid"}, metadata_store=corrupt_store)

        assert adapter.get_file_url("img/a.png") == ""
