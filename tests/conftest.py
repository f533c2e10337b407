"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest

FIXED_NOW = datetime(2024, 1, 15, 8, 30, 0, tzinfo=UTC)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingClient:
    """httpx.Client over a MockTransport that remembers every request."""

    def __init__(self, handler: Handler):
        self.requests: list[httpx.Request] = []

        def _handle(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        self.client = httpx.Client(transport=httpx.MockTransport(_handle))

    @property
    def methods(self) -> list[str]:
        return [r.method for r in self.requests]


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def mock_http() -> Iterator[Callable[[Handler], RecordingClient]]:
    """Factory for recording HTTP clients."""
    created: list[RecordingClient] = []

    def _make(handler: Handler) -> RecordingClient:
        recording = RecordingClient(handler)
        created.append(recording)
        return recording

    yield _make

    for recording in created:
        recording.client.close()


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    path = tmp_path / "a.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture(autouse=True)
def clean_storage_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment overrides out of config loading."""
    for name in list(os.environ):
        if name.startswith("ASSETBRIDGE_"):
            monkeypatch.delenv(name, raising=False)
