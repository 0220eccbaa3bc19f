"""RoflUtilityAppd: ROFL utility backed by the appd daemon."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .RoflUtility import RoflUtility

logger = logging.getLogger(__name__)

# Retry configuration for appd requests
MAX_RETRIES = 30
BACKOFF_BASE = 1.0
BACKOFF_MAX = 5.0


class RoflUtilityAppd(RoflUtility):
    """ROFL utility talking to the appd over a Unix socket or HTTP.

    :cvar ROFL_SOCKET_PATH: Default Unix socket path for appd.
    :ivar url: Optional HTTP URL or socket path override.
    :ivar max_retries: Attempts per request before giving up.
    """

    ROFL_SOCKET_PATH = "/run/rofl-appd.sock"

    def __init__(
        self,
        url: str = "",
        max_retries: int = MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the appd utility.

        :param url: Optional URL or socket path. Empty uses default socket.
        :param max_retries: Attempts per request.
        :param transport: Optional transport override.
        """
        self.url = url
        self.max_retries = max_retries
        self._transport = transport

    def _build_transport(self) -> httpx.BaseTransport | None:
        if self._transport is not None:
            return self._transport
        if self.url and not self.url.startswith("http"):
            logger.debug(f"Using HTTP socket: {self.url}")
            return httpx.HTTPTransport(uds=self.url)
        if not self.url:
            logger.debug(f"Using unix domain socket: {self.ROFL_SOCKET_PATH}")
            return httpx.HTTPTransport(uds=self.ROFL_SOCKET_PATH)
        return None

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the appd, retrying with backoff.

        :param method: HTTP method.
        :param path: API endpoint path.
        :returns: Successful HTTP response.
        :raises RuntimeError: If every attempt failed.
        """
        base_url = self.url if self.url.startswith("http") else "http://localhost"

        with httpx.Client(transport=self._build_transport()) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = client.request(method, base_url + path, timeout=None, **kwargs)
                    if response.is_success:
                        return response
                    logger.warning(
                        f"appd {method} {path} failed: {response.status_code} "
                        f"{response.reason_phrase} (attempt {attempt}/{self.max_retries})"
                    )
                except httpx.RequestError as exc:
                    logger.warning(
                        f"appd {method} {path} error: {exc} "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                if attempt < self.max_retries:
                    time.sleep(min(BACKOFF_BASE * (1.5 ** (attempt - 1)), BACKOFF_MAX))

        raise RuntimeError(f"appd {method} {path} failed after {self.max_retries} attempts")

    def fetch_appid(self) -> str:
        """Fetch the current ROFL app ID from appd.

        :returns: Bech32-encoded app ID.
        """
        return self._request("GET", "/rofl/v1/app/id").content.decode("utf-8").strip()

    def fetch_key(self, id: str) -> str:
        """Generate or fetch a secp256k1 key by ID.

        :param id: Key identifier.
        :returns: Hex-encoded private key.
        """
        payload = {"key_id": id, "kind": "secp256k1"}
        return self._request("POST", "/rofl/v1/keys/generate", json=payload).json()["key"]
