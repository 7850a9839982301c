"""pnut.io API client with app authentication and stream management.

This module provides the Client class which handles:
- App access token retrieval (client-credentials grant), at most once
- Bearer-authenticated requests with JSON bodies
- Stream CRUD (retrieve, create, update, remove, retrieve-or-create)
- Realtime monitoring of a stream's WebSocket endpoint
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stpnut.api.auth import request_access_token
from stpnut.api.http import (
    API_BASE_URL,
    ApiError,
    InvalidParameters,
    PnutError,
    RequestExecutor,
)
from stpnut.api.realtime import RealtimeMonitor, monitor
from stpnut.config.schema import ClientConfig, Config
from stpnut.logging import log_stream_operation

if TYPE_CHECKING:
    from stpnut.api.realtime import EventHandler


class Unauthenticated(PnutError):
    """Raised when an authenticated call is made without a token."""


class ApiResponse(NamedTuple):
    """A successful envelope split into its meta and data parts."""

    meta: dict[str, Any]
    data: Any


class StreamParams(BaseModel):
    """Parameters identifying (and optionally defining) an app stream.

    Attributes:
        key: Caller-chosen stream key, unique per app
        object_types: Ordered object type tags the stream subscribes to
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    key: str | None = None
    object_types: list[str] | None = Field(default=None, alias="objectTypes")


StreamLike = StreamParams | Mapping[str, Any]

# Always set by the client, never taken from caller headers
MANDATORY_HEADERS = frozenset({"authorization", "content-type"})


def ensure_keys(keys: Sequence[str], params: StreamParams) -> None:
    """Check that each required stream field is present.

    Args:
        keys: Field names, checked in order.
        params: Stream parameters.

    Raises:
        InvalidParameters: Naming the first missing field.
    """
    for key in keys:
        if getattr(params, key, None) is None:
            raise InvalidParameters(
                f'Invalid parameters: must provide stream "{key}" value',
                key=key,
            )


def _as_stream_params(stream: StreamLike | None) -> StreamParams:
    if isinstance(stream, StreamParams):
        return stream
    if not isinstance(stream, Mapping):
        raise InvalidParameters("Invalid parameters: must provide stream parameters")

    try:
        return StreamParams.model_validate(dict(stream))
    except ValidationError as e:
        error = e.errors()[0]
        key = str(error["loc"][0]) if error["loc"] else None
        raise InvalidParameters(
            f'Invalid parameters: stream "{key}" {error["msg"].lower()}',
            key=key,
        ) from e


class Client:
    """Async pnut.io client for one app session.

    The bearer token is set at construction or by the first successful
    authenticate() call and is never replaced afterwards.

    The client supports both context manager and standalone usage.
    """

    STREAM_TYPE = "long_poll"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token: str | None = None,
        *,
        base_url: str = API_BASE_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        ping_interval: float = RealtimeMonitor.DEFAULT_PING_INTERVAL,
        ping_payload: str = RealtimeMonitor.DEFAULT_PING_PAYLOAD,
    ) -> None:
        """Initialize the client.

        Args:
            client_id: App client id.
            client_secret: App client secret.
            token: Existing app access token, if already known.
            base_url: API base URL.
            timeout: HTTP timeout in seconds.
            http_client: Optional httpx client (not closed by this client).
            ping_interval: Keepalive interval for monitor_web_socket().
            ping_payload: Keepalive frame for monitor_web_socket().
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._token = token or None
        self._executor = RequestExecutor(
            base_url=base_url,
            timeout=timeout,
            client=http_client,
        )
        self._ping_interval = ping_interval
        self._ping_payload = ping_payload

    @classmethod
    def from_config(
        cls,
        config: Config | ClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> Client:
        """Build a client from loaded configuration.

        Args:
            config: Full Config or just its client section.
            http_client: Optional httpx client.

        Returns:
            Configured Client.
        """
        realtime_kwargs: dict[str, Any] = {}
        if isinstance(config, Config):
            realtime_kwargs = {
                "ping_interval": config.realtime.ping_interval,
                "ping_payload": config.realtime.ping_payload,
            }
            config = config.client

        return cls(
            config.client_id,
            config.client_secret,
            config.token,
            base_url=config.base_url,
            timeout=config.timeout,
            http_client=http_client,
            **realtime_kwargs,
        )

    async def __aenter__(self) -> Client:
        """Enter async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this client owns it."""
        await self._executor.aclose()

    @property
    def token(self) -> str | None:
        """Get the bearer token, if authenticated."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        """Whether a bearer token is held."""
        return self._token is not None

    # =========================================================================
    # Authentication
    # =========================================================================

    async def authenticate(self) -> None:
        """Obtain an app access token unless one is already held.

        Raises:
            InvalidConfiguration: If client_id or client_secret is missing.
            MissingToken: If the token response has no access_token.
            ApiError: If the API returns an error envelope.
            httpx.RequestError: On transport failure.
        """
        if self._token:
            return

        self._token = await request_access_token(
            self._executor,
            self.client_id,
            self.client_secret,
        )

    async def authenticated_request(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> ApiResponse:
        """Perform a bearer-authenticated request.

        Caller headers are merged first so that Authorization and
        Content-Type always carry the client's values.

        Args:
            path: API path, e.g. "/streams".
            method: HTTP method.
            headers: Extra request headers.
            body: JSON-serializable request body.

        Returns:
            ApiResponse split from the envelope.

        Raises:
            Unauthenticated: If no token is held.
            ApiError: On error envelopes.
            httpx.RequestError: On transport failure.
        """
        if not self._token:
            raise Unauthenticated("Unauthenticated: token must not be null")

        merged = {
            name: value
            for name, value in (headers or {}).items()
            if name.lower() not in MANDATORY_HEADERS
        }
        merged["Authorization"] = f"Bearer {self._token}"
        merged["Content-Type"] = "application/json"

        content = json.dumps(body) if body is not None else None

        envelope = await self._executor.execute(
            path,
            method=method,
            headers=merged,
            body=content,
        )
        return ApiResponse(envelope.get("meta") or {}, envelope.get("data"))

    async def authenticated_ids(self) -> ApiResponse:
        """Fetch the ids of all users who authorized this app.

        Returns:
            ApiResponse whose data is the list of user ids.
        """
        return await self.authenticated_request("/apps/me/users/ids")

    # =========================================================================
    # Streams
    # =========================================================================

    async def retrieve_stream(self, stream: StreamLike) -> ApiResponse:
        """Retrieve the stream with the given key.

        Args:
            stream: Parameters with "key".

        Raises:
            InvalidParameters: If key is missing.
            Unauthenticated: If no token is held.
            ApiError: On error envelopes (code 404 when missing).
        """
        params = _as_stream_params(stream)
        ensure_keys(("key",), params)
        return await self.authenticated_request(f"/streams/{params.key}")

    async def remove_stream(self, stream: StreamLike) -> ApiResponse:
        """Delete the stream with the given key.

        Args:
            stream: Parameters with "key".
        """
        params = _as_stream_params(stream)
        ensure_keys(("key",), params)
        response = await self.authenticated_request(f"/streams/{params.key}", method="DELETE")
        log_stream_operation("remove_stream", params.key, "success")
        return response

    async def create_stream(self, stream: StreamLike) -> ApiResponse:
        """Create a long-poll stream.

        Args:
            stream: Parameters with "key" and "object_types".
        """
        params = _as_stream_params(stream)
        ensure_keys(("key", "object_types"), params)
        body = {
            "type": self.STREAM_TYPE,
            "key": params.key,
            "object_types": params.object_types,
        }
        response = await self.authenticated_request("/streams", method="POST", body=body)
        log_stream_operation("create_stream", params.key, "created")
        return response

    async def update_stream(self, stream: StreamLike) -> ApiResponse:
        """Replace the object types of an existing stream.

        Args:
            stream: Parameters with "key" and "object_types".
        """
        params = _as_stream_params(stream)
        ensure_keys(("key", "object_types"), params)
        body = {"object_types": params.object_types}
        response = await self.authenticated_request(
            f"/streams/{params.key}",
            method="PUT",
            body=body,
        )
        log_stream_operation("update_stream", params.key, "success")
        return response

    async def retrieve_or_create_stream(self, stream: StreamLike) -> ApiResponse:
        """Retrieve a stream, creating it when the API reports it missing.

        Not atomic: another client may create or delete the stream between
        the retrieve and the create.

        Args:
            stream: Parameters with "key" and "object_types".

        Raises:
            ApiError: Any retrieve error other than 404, or a create error.
        """
        params = _as_stream_params(stream)
        try:
            return await self.retrieve_stream(params)
        except ApiError as e:
            if not e.is_not_found:
                log_stream_operation("retrieve_stream", params.key, "failed")
                raise
            log_stream_operation("retrieve_stream", params.key, "not_found")

        return await self.create_stream(params)

    # =========================================================================
    # Realtime
    # =========================================================================

    async def monitor_web_socket(
        self,
        url: str | None,
        on_event: EventHandler | None,
    ) -> RealtimeMonitor:
        """Open a WebSocket and forward its events to on_event.

        Args:
            url: WebSocket URL (e.g. an app stream endpoint).
            on_event: Plain or async callable receiving (event, payload).

        Returns:
            Started RealtimeMonitor handle.
        """
        return await monitor(
            url,
            on_event,
            ping_interval=self._ping_interval,
            ping_payload=self._ping_payload,
        )
