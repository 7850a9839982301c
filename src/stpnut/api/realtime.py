"""WebSocket monitor for pnut.io realtime (user/app stream) connections.

This module provides the RealtimeMonitor which:
- Opens a WebSocket connection and reports open/message/error/close events
- Sends an application-level keepalive frame while the connection is open
- Decodes inbound frames as JSON; undecodable frames are reported as
  "error" events without stopping the listener
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.protocol import State

from stpnut.api.http import InvalidParameters
from stpnut.logging import log_realtime_event, redact_secrets

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], Awaitable[None] | None]


class MonitorEvent(str, Enum):
    """Events delivered to a monitor's handler."""

    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"


class RealtimeMonitor:
    """Handle for a monitored WebSocket connection.

    The handler receives (event, payload) pairs:
    - ("open", None) once connected
    - ("message", decoded_json) per inbound frame
    - ("error", exception) per frame that is not valid JSON, and when
      the handler itself raises while handling a message
    - ("close", info) once, with None for a clean close or the
      ConnectionClosed exception otherwise

    If the handler also raises while handling an "error" event, the
    listener stops: the connection is closed, no "close" event is
    delivered, and the exception is re-raised from wait_closed().
    """

    DEFAULT_PING_INTERVAL = 30.0
    DEFAULT_PING_PAYLOAD = "ping"

    def __init__(
        self,
        url: str | None,
        on_event: EventHandler | None,
        *,
        ping_interval: float = DEFAULT_PING_INTERVAL,
        ping_payload: str = DEFAULT_PING_PAYLOAD,
        connect: Callable[[str], Awaitable[Any]] | None = None,
    ) -> None:
        """Initialize the monitor without connecting.

        Args:
            url: WebSocket URL to connect to.
            on_event: Plain or async callable receiving (event, payload).
            ping_interval: Seconds between keepalive frames.
            ping_payload: Text frame sent as keepalive.
            connect: Connection factory (defaults to websockets' connect).

        Raises:
            InvalidParameters: If url or on_event is missing.
        """
        if not url or on_event is None:
            raise InvalidParameters("Invalid parameters: must provide url and callback")

        self._url = url
        self._log_url = redact_secrets(url)
        self._on_event = on_event
        self._ping_interval = ping_interval
        self._ping_payload = ping_payload
        self._connect = connect or ws_connect
        self._connection: Any = None
        self._keepalive_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def url(self) -> str:
        """Get the monitored URL."""
        return self._url

    @property
    def is_open(self) -> bool:
        """Whether the connection is currently open."""
        return (
            not self._closed
            and self._connection is not None
            and self._connection.state is State.OPEN
        )

    async def start(self) -> RealtimeMonitor:
        """Connect and start the keepalive and reader tasks.

        Returns:
            This monitor.

        Raises:
            OSError, websockets.exceptions.InvalidURI, ...: Transport
                failures while connecting propagate unchanged.
            Exception: Whatever the handler raises for the "open" event,
                after the connection has been closed.
        """
        self._connection = await self._connect(self._url)
        log_realtime_event(MonitorEvent.OPEN.value, self._log_url)

        self._keepalive_task = asyncio.create_task(self._keepalive())
        try:
            await self._emit(MonitorEvent.OPEN, None)
        except Exception:
            await self.close()
            raise
        self._reader_task = asyncio.create_task(self._read())
        return self

    async def close(self) -> None:
        """Close the connection and stop keepalive. Safe to call twice.

        Waits for the listener to finish but does not raise its failure;
        use wait_closed() to observe it.
        """
        if self._closed:
            return
        self._closed = True
        await self._stop_keepalive()

        if self._connection is not None:
            await self._connection.close()

        # close() may be called from inside the handler, i.e. the reader task
        reader = self._reader_task
        if reader is not None and reader is not asyncio.current_task():
            await asyncio.wait([reader])

    async def wait_closed(self) -> None:
        """Wait until the listener has delivered its close event.

        Raises:
            Exception: Whatever the handler raised while handling an
                "error" event, if that stopped the listener.
        """
        if self._reader_task is not None:
            await self._reader_task

    async def _emit(self, event: MonitorEvent, payload: Any) -> None:
        result = self._on_event(event.value, payload)
        if inspect.isawaitable(result):
            await result

    async def _deliver(self, payload: Any) -> None:
        try:
            await self._emit(MonitorEvent.MESSAGE, payload)
        except Exception as e:
            logger.exception("Realtime handler failed on a message")
            log_realtime_event(MonitorEvent.ERROR.value, self._log_url)
            await self._emit(MonitorEvent.ERROR, e)

    async def _keepalive(self) -> None:
        while self.is_open:
            try:
                await self._connection.send(self._ping_payload)
            except ConnectionClosed:
                # Connection went away between the state check and the send
                return
            await asyncio.sleep(self._ping_interval)

    async def _stop_keepalive(self) -> None:
        task = self._keepalive_task
        self._keepalive_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _read(self) -> None:
        close_info: ConnectionClosed | None = None
        try:
            async for frame in self._connection:
                try:
                    payload = json.loads(frame)
                except ValueError as e:
                    logger.warning("Dropping undecodable realtime frame: %s", e)
                    log_realtime_event(MonitorEvent.ERROR.value, self._log_url)
                    await self._emit(MonitorEvent.ERROR, e)
                    continue
                await self._deliver(payload)
        except ConnectionClosedError as e:
            close_info = e
        finally:
            await self._stop_keepalive()
            if not self._closed:
                self._closed = True
                await self._connection.close()

        log_realtime_event(MonitorEvent.CLOSE.value, self._log_url)
        await self._emit(MonitorEvent.CLOSE, close_info)


async def monitor(
    url: str | None,
    on_event: EventHandler | None,
    *,
    ping_interval: float = RealtimeMonitor.DEFAULT_PING_INTERVAL,
    ping_payload: str = RealtimeMonitor.DEFAULT_PING_PAYLOAD,
    connect: Callable[[str], Awaitable[Any]] | None = None,
) -> RealtimeMonitor:
    """Open a WebSocket and forward its events to on_event.

    Args:
        url: WebSocket URL.
        on_event: Plain or async callable receiving (event, payload).
        ping_interval: Seconds between keepalive frames.
        ping_payload: Text frame sent as keepalive.
        connect: Connection factory, for tests.

    Returns:
        Started RealtimeMonitor handle.

    Raises:
        InvalidParameters: If url or on_event is missing (before connecting).
    """
    handle = RealtimeMonitor(
        url,
        on_event,
        ping_interval=ping_interval,
        ping_payload=ping_payload,
        connect=connect,
    )
    return await handle.start()

