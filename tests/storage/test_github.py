"""Tests for the GitHub + jsDelivr adapter."""

import base64
import json

import httpx
import pytest

from assetbridge.storage.base import ErrorKind
from assetbridge.storage.implementations.github import GitHubJsDelivrAdapter

GITHUB_CONFIG = {"token": "T", "repo": "octo/imgs", "branch": "main", "path": "images"}

CONTENTS_URL = "https://api.github.com/repos/octo/imgs/contents/images/img/a.png"


def route(responses: dict[str, list[httpx.Response]]):
    """Handler answering each method from its own queue of responses."""

    def handler(request: httpx.Request) -> httpx.Response:
        return responses[request.method].pop(0)

    return handler


class TestGitHubConfig:
    def test_defaults(self):
        adapter = GitHubJsDelivrAdapter({"token": "T", "repo": "octo/imgs"})

        assert adapter.config["branch"] == "main"
        assert adapter.config["path"] == "images"
        assert adapter.validate_config()

    def test_token_required(self):
        assert not GitHubJsDelivrAdapter({"token": "", "repo": "octo/imgs"}).validate_config()

    def test_cdn_url(self):
        adapter = GitHubJsDelivrAdapter({**GITHUB_CONFIG, "branch": "dev", "path": "/assets/"})
        assert adapter.get_file_url("img/a.png") == (
            "https://cdn.jsdelivr.net/gh/octo/imgs@dev/assets/img/a.png"
        )

    @pytest.mark.parametrize("prefix", ["https://img.example.com", "https://img.example.com/"])
    def test_prefixed_url(self, prefix):
        adapter = GitHubJsDelivrAdapter({**GITHUB_CONFIG, "url_prefix": prefix})
        assert adapter.get_file_url("img/a.png") == "https://img.example.com/img/a.png"


class TestGitHubUpload:
    def test_upload_creates_file(self, mock_http, image_file):
        http = mock_http(
            route({"PUT": [httpx.Response(201, json={"content": {"sha": "abc"}})]})
        )
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.url == "https://cdn.jsdelivr.net/gh/octo/imgs@main/images/img/a.png"
        [request] = http.requests
        assert request.method == "PUT"
        assert str(request.url) == CONTENTS_URL
        assert request.headers["authorization"] == "token T"
        assert request.headers["accept"] == "application/vnd.github.v3+json"
        assert request.headers["user-agent"].startswith("assetbridge/")

        payload = json.loads(request.content)
        assert payload["branch"] == "main"
        assert base64.b64decode(payload["content"]) == image_file.read_bytes()
        assert "sha" not in payload

    def test_upload_with_url_prefix(self, mock_http, image_file):
        http = mock_http(
            route({"PUT": [httpx.Response(201, json={"content": {"sha": "abc"}})]})
        )
        adapter = GitHubJsDelivrAdapter(
            {**GITHUB_CONFIG, "url_prefix": "https://img.example.com/"}, client=http.client
        )

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.url == "https://img.example.com/img/a.png"
        assert str(http.requests[0].url) == CONTENTS_URL

    def test_upload_existing_file_updates_with_sha(self, mock_http, image_file):
        http = mock_http(
            route(
                {
                    "PUT": [
                        httpx.Response(422, json={"message": "sha wasn't supplied"}),
                        httpx.Response(200, json={"content": {"sha": "new"}}),
                    ],
                    "GET": [httpx.Response(200, json={"sha": "old"})],
                }
            )
        )
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.ok
        assert http.methods == ["PUT", "GET", "PUT"]
        assert json.loads(http.requests[2].content)["sha"] == "old"

    def test_upload_response_without_sha(self, mock_http, image_file):
        http = mock_http(route({"PUT": [httpx.Response(201, json={"content": {}})]}))
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        result = adapter.upload_file(image_file, "img/a.png")

        assert result.error == ErrorKind.PROTOCOL_MISMATCH

    def test_upload_rejected(self, mock_http, image_file):
        http = mock_http(route({"PUT": [httpx.Response(401, json={"message": "Bad creds"})]}))
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.upload_file(image_file, "img/a.png").error == ErrorKind.REMOTE_REJECTED


class TestGitHubDelete:
    def test_delete_reads_sha_then_deletes(self, mock_http):
        http = mock_http(
            route(
                {
                    "GET": [httpx.Response(200, json={"sha": "abc"})],
                    "DELETE": [httpx.Response(200, json={"commit": {}})],
                }
            )
        )
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.delete_file("img/a.png") is True

        assert http.methods == ["GET", "DELETE"]
        delete_request = http.requests[1]
        assert str(delete_request.url) == CONTENTS_URL
        payload = json.loads(delete_request.content)
        assert payload["sha"] == "abc"
        assert payload["branch"] == "main"

    def test_delete_missing_file_fails_without_delete(self, mock_http):
        http = mock_http(route({"GET": [httpx.Response(404, json={"message": "Not Found"})]}))
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.try_delete("img/a.png") == ErrorKind.REMOTE_REJECTED
        assert http.methods == ["GET"]

    def test_delete_without_sha_in_response(self, mock_http):
        http = mock_http(route({"GET": [httpx.Response(200, json={"name": "a.png"})]}))
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.try_delete("img/a.png") == ErrorKind.PROTOCOL_MISMATCH
        assert http.methods == ["GET"]

    def test_delete_rejected(self, mock_http):
        http = mock_http(
            route(
                {
                    "GET": [httpx.Response(200, json={"sha": "abc"})],
                    "DELETE": [httpx.Response(409, json={"message": "Conflict"})],
                }
            )
        )
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.delete_file("img/a.png") is False


class TestGitHubConnection:
    def test_connection(self, mock_http):
        http = mock_http(route({"GET": [httpx.Response(200, json={"full_name": "octo/imgs"})]}))
        adapter = GitHubJsDelivrAdapter(GITHUB_CONFIG, client=http.client)

        assert adapter.test_connection() is True
        assert str(http.requests[0].url) == "https://api.github.com/repos/octo/imgs"
