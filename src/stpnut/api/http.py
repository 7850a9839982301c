"""Single-shot HTTP request execution against the pnut.io API.

This module provides the RequestExecutor which:
- Builds absolute URLs from the fixed API base and a request path
- Issues exactly one request per call (no retries)
- Parses the JSON envelope and raises ApiError for error envelopes
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from stpnut.logging import log_api_error, log_api_request

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.pnut.io/v0"

# Transport failures are httpx's own exceptions, passed through unchanged.
TransportError = httpx.RequestError


class PnutError(Exception):
    """Base class for errors raised by the pnut.io client."""


class InvalidParameters(PnutError):
    """Raised when a caller omits a mandatory parameter."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        """Initialize invalid parameters error.

        Args:
            message: Error description.
            key: Name of the first missing parameter, if known.
        """
        super().__init__(message)
        self.key = key


class ApiError(PnutError):
    """Raised when the API answers with an error envelope."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        response_body: Any = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: The envelope's meta.error_message.
            code: The envelope's meta.code (HTTP-like status).
            response_body: Decoded response body if available.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.response_body = response_body

    @property
    def is_not_found(self) -> bool:
        """Whether the API reported the resource as missing."""
        return self.code == 404


class RequestExecutor:
    """Issues HTTP requests against the pnut.io API base.

    The executor owns its httpx client unless one is injected, in which
    case closing the executor leaves the injected client open.
    """

    def __init__(
        self,
        *,
        base_url: str = API_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            base_url: API origin every path is appended to.
            timeout: Request timeout in seconds for the owned client.
            client: Optional httpx client (used by tests and host apps).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        """Get the API base URL."""
        return self._base_url

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the owned HTTP client, if any."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def execute(
        self,
        path: str | None,
        *,
        method: str | None = "GET",
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> dict[str, Any]:
        """Perform one request and return the decoded envelope.

        Args:
            path: API path relative to the base, e.g. "/streams".
            method: HTTP method (defaults to GET when empty).
            headers: Request headers.
            body: Already-serialized request body.

        Returns:
            The full decoded JSON envelope.

        Raises:
            InvalidParameters: If path is missing.
            ApiError: If the envelope carries meta.error_message or the
                body is not a JSON object.
            httpx.RequestError: On transport failure.
        """
        if not path:
            raise InvalidParameters('Invalid parameters: must provide "path" value', key="path")

        method = (method or "GET").upper()
        url = f"{self._base_url}{path}"
        client = self._ensure_client()

        started = time.monotonic()
        response = await client.request(method, url, headers=headers, content=body)
        log_api_request(
            method,
            path,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )

        try:
            envelope = response.json()
        except ValueError as e:
            logger.debug("Non-JSON response for %s %s", method, path)
            raise ApiError(
                "Response body is not valid JSON",
                code=response.status_code,
                response_body=response.text,
            ) from e

        if not isinstance(envelope, dict):
            raise ApiError(
                "Response body is not a JSON object",
                code=response.status_code,
                response_body=envelope,
            )

        meta = envelope.get("meta")
        if isinstance(meta, dict) and meta.get("error_message"):
            code = meta.get("code")
            log_api_error(method, path, code, meta["error_message"])
            raise ApiError(
                meta["error_message"],
                code=code,
                response_body=envelope,
            )

        return envelope
