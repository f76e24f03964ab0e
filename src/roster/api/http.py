"""Thin httpx wrapper shared by the record and auth services."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx

from roster.config import ENDPOINTS, REQUEST_TIMEOUT_SEC
from roster.errors import (
    AuthenticationError,
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteError,
    TransportError,
)

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]

_STATUS_ERRORS = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: RecordNotFoundError,
}


class ApiClient:
    """Send JSON requests to the roster API and normalise failures.

    Every call either returns the decoded JSON body of a successful response
    or raises one of:

    * :class:`TransportError` when no HTTP response was received;
    * :class:`RemoteError` (or a status-specific subclass) when the status
      is not 2xx or the body says ``"success": false``.

    A body without a ``success`` key counts as successful when the status is
    2xx; only some endpoints report the flag.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
        transport: Optional[httpx.BaseTransport] = None,
        endpoints: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._token_provider = token_provider
        self._endpoints: Dict[str, str] = dict(ENDPOINTS)
        if endpoints:
            self._endpoints.update(endpoints)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------
    def _headers(self, *, authenticated: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if authenticated and self._token_provider is not None:
            token = self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        authenticated: bool = True,
        fallback_message: str = "Request failed",
    ) -> Dict[str, Any]:
        path = self._endpoints[endpoint]
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(authenticated=authenticated),
            )
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed without a response: %s", method, path, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        status, payload = _decode(response)
        if response.is_success and payload.get("success", True) is not False:
            return payload

        message = str(payload.get("message") or fallback_message)
        error_cls = _STATUS_ERRORS.get(status, RemoteError)
        logger.debug("%s %s -> %s: %s", method, path, status, message)
        raise error_cls(message, status_code=status, payload=payload)


def _decode(response: httpx.Response) -> Tuple[int, Dict[str, Any]]:
    """Return the status and the JSON object body (empty when absent)."""
    try:
        payload = response.json()
    except ValueError:
        if response.content:
            logger.warning("Non-JSON response body from %s (status %s)", response.url, response.status_code)
        payload = {}
    if not isinstance(payload, dict):
        payload = {"data": payload}
    return response.status_code, payload
