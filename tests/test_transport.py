from __future__ import annotations

import asyncio
import gzip
import json
from email.message import Message
from typing import Any
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from startup_visualizer.contracts.error import TransportError
from startup_visualizer.transport import AUTH_HEADER, JsonLoader


class DummyResponse:
    def __init__(self, payload: bytes, headers: dict[str, str] | None = None) -> None:
        self._payload = payload
        self.headers = Message()
        for key, value in (headers or {}).items():
            self.headers[key] = value

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, *_: Any) -> None:
        return None

    def read(self, _limit: int = -1) -> bytes:
        return self._payload


def _loader() -> tuple[JsonLoader, list[tuple[str, str]]]:
    notes: list[tuple[str, str]] = []
    return JsonLoader(lambda title, message: notes.append((title, message)), token=""), notes


def test_read_json_decodes_payload() -> None:
    loader, _notes = _loader()
    body = json.dumps({"productNames": ["IU"]}).encode()
    with patch("startup_visualizer.transport.urlopen", MagicMock(return_value=DummyResponse(body))):
        assert loader.read_json("http://stats.local/info") == {"productNames": ["IU"]}


def test_read_json_handles_gzip() -> None:
    loader, _notes = _loader()
    body = gzip.compress(b"[1, 2]")
    response = DummyResponse(body, {"Content-Encoding": "gzip"})
    with patch("startup_visualizer.transport.urlopen", MagicMock(return_value=response)):
        assert loader.read_json("http://stats.local/metrics") == [1, 2]


def test_empty_body_is_none() -> None:
    loader, _notes = _loader()
    with patch("startup_visualizer.transport.urlopen", MagicMock(return_value=DummyResponse(b""))):
        assert loader.read_json("http://stats.local/info") is None


def test_rejects_non_http_urls() -> None:
    loader, _notes = _loader()
    with pytest.raises(TransportError):
        loader.read_json("file:///etc/passwd")


def test_bad_json_raises_transport_error() -> None:
    loader, _notes = _loader()
    with patch("startup_visualizer.transport.urlopen", MagicMock(return_value=DummyResponse(b"<html>"))):
        with pytest.raises(TransportError):
            loader.read_json("http://stats.local/info")


def test_load_json_reports_http_errors() -> None:
    loader, notes = _loader()
    error = HTTPError("http://stats.local/info", 503, "Service Unavailable", Message(), None)
    with patch("startup_visualizer.transport.urlopen", MagicMock(side_effect=error)):
        assert asyncio.run(loader.load_json("http://stats.local/info")) is None
    assert notes[0][0] == "Cannot load data"
    assert "503" in notes[0][1]


def test_load_json_reports_network_errors() -> None:
    loader, notes = _loader()
    with patch(
        "startup_visualizer.transport.urlopen",
        MagicMock(side_effect=URLError("connection refused")),
    ):
        assert asyncio.run(loader.load_json("http://stats.local/info")) is None
    assert len(notes) == 1
    assert "connection refused" in notes[0][1]


def test_load_json_returns_payload() -> None:
    loader, notes = _loader()
    with patch("startup_visualizer.transport.urlopen", MagicMock(return_value=DummyResponse(b"[]"))):
        assert asyncio.run(loader.load_json("http://stats.local/metrics/x")) == []
    assert notes == []


def test_token_header(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STARTUP_VISUALIZER_TOKEN", "secret")
    opener = MagicMock(return_value=DummyResponse(b"{}"))
    with patch("startup_visualizer.transport.urlopen", opener):
        JsonLoader().read_json("https://stats.local/info")
    request = opener.call_args.args[0]
    assert request.get_header(AUTH_HEADER) == "Bearer secret"
