"""JSON transport for the aggregated stats server."""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
import os
from collections.abc import Callable
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from .contracts.error import TransportError

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "STARTUP_VISUALIZER_TOKEN"
AUTH_HEADER = "Authorization"
_CLIENT_USER_AGENT = "StartupVisualizer/1.0"
_MAX_RESPONSE_BYTES = 5 * 1024 * 1024  # 5 MiB cap to prevent runaway responses.
ALLOWED_URL_SCHEMES = {"http", "https"}

Notify = Callable[[str, str], None]


def _log_notification(title: str, message: str) -> None:
    logger.warning("%s: %s", title, message)


class JsonLoader:
    """Fetch JSON documents and report failures on a notification channel.

    ``load_json`` never raises for HTTP, network or decode errors: they are
    passed to ``notify(title, message)`` and the call resolves to ``None``.
    """

    def __init__(
        self,
        notify: Notify | None = None,
        *,
        timeout: float = 10.0,
        token: str | None = None,
    ) -> None:
        self.notify = notify or _log_notification
        self.timeout = timeout
        self._token = token if token is not None else os.getenv(TOKEN_ENV_VAR)

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": _CLIENT_USER_AGENT}
        if self._token:
            headers[AUTH_HEADER] = f"Bearer {self._token}"
        return headers

    def read_json(self, url: str) -> Any:
        """Blocking fetch; raises :class:`TransportError` on any failure."""

        parsed = urlparse(url)
        if parsed.scheme not in ALLOWED_URL_SCHEMES or not parsed.netloc:
            raise TransportError(f"Unsupported URL {url!r}", hint="Use an http(s) server URL")
        request = Request(url, headers=self._build_headers())  # noqa: S310  # nosec B310
        try:
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310  # nosec B310
                payload = response.read(_MAX_RESPONSE_BYTES + 1)
                if len(payload) > _MAX_RESPONSE_BYTES:
                    raise TransportError(f"Response from {url} exceeds {_MAX_RESPONSE_BYTES} bytes")
                headers = getattr(response, "headers", None)
                encoding = headers.get("Content-Encoding", "") if headers is not None else ""
                if encoding.lower() == "gzip":
                    payload = gzip.decompress(payload)
        except HTTPError as exc:
            raise TransportError(f"{url} returned HTTP {exc.code}: {exc.reason}") from exc
        except (URLError, TimeoutError, ConnectionError, OSError) as exc:
            raise TransportError(f"Cannot load {url}: {exc}") from exc

        if not payload:
            return None
        try:
            return json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError(f"Invalid JSON from {url}: {exc}") from exc

    def report(self, exc: TransportError) -> None:
        logger.debug("request failed: %s", exc)
        self.notify("Cannot load data", str(exc))

    async def load_json(self, url: str) -> Any | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.read_json, url)
        except TransportError as exc:
            self.report(exc)
            return None


__all__ = ["AUTH_HEADER", "JsonLoader", "Notify", "TOKEN_ENV_VAR"]
