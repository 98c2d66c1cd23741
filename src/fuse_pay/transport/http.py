"""
REST HTTP client for the Fuse backend. Every endpoint is a JSON POST.
"""

import logging
from typing import Any, Optional

import httpx

from fuse_pay.config import ClientConfig
from fuse_pay.errors import RemoteRejected, TransportError

_LOGGER = logging.getLogger(__name__)

_REASON_KEYS = ("message", "error", "reason")


class HttpClient:
    def __init__(self, config: Optional[ClientConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config or ClientConfig()
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers={"User-Agent": self._config.user_agent, "Accept": "application/json"},
            timeout=self._config.timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @staticmethod
    def _reason(resp: httpx.Response) -> tuple[str, Optional[dict[str, Any]]]:
        """Pull a human-readable reason out of an error response."""
        try:
            body = resp.json()
        except ValueError:
            return (resp.text[:200] or resp.reason_phrase), None
        if isinstance(body, dict):
            for k in _REASON_KEYS:
                if isinstance(body.get(k), str) and body[k]:
                    return body[k], body
            return resp.reason_phrase, body
        if isinstance(body, str) and body:
            return body[:200], None
        return resp.reason_phrase, None

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> httpx.Response:
        """POST JSON and return the response. Raises TransportError or RemoteRejected.

        Any httpx request failure (connect, timeout, body decoding, redirects,
        an unusable URL) is reported as TransportError.
        """
        try:
            resp = await self._client.post(path, json=body)
        except httpx.TimeoutException as e:
            _LOGGER.warning("POST %s timed out", path)
            raise TransportError(f"Request to {path} timed out") from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            _LOGGER.warning("POST %s failed: %s", path, type(e).__name__)
            raise TransportError(f"Request to {path} failed: {e}") from e

        _LOGGER.debug("POST %s -> %d", path, resp.status_code)
        if not resp.is_success:
            reason, details = self._reason(resp)
            _LOGGER.warning("POST %s rejected with HTTP %d", path, resp.status_code)
            raise RemoteRejected(reason, resp.status_code, details)
        return resp

    async def close(self) -> None:
        await self._client.aclose()
