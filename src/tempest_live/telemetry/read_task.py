"""Websocket read task for a single connection attempt.

A :class:`ReadTask` dials the Tempest websocket, subscribes to the
observation and rapid-wind streams and forwards decoded records to the
mailbox in arrival order.  Failures are reported as a single
:class:`~tempest_live.telemetry.messages.ConnectionLost` message after which
the task ends; retry policy belongs to
:class:`~tempest_live.telemetry.connection.ConnectionManager`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol

import websockets
from websockets.exceptions import WebSocketException

from .decoder import FrameDecodeError, decode_frame
from .messages import ConnectionLost, Connected
from .records import Acknowledgement, Unrecognized

__all__ = [
    "CONNECT_TIMEOUT",
    "Dialer",
    "OBSERVATION_REQUEST_ID",
    "RAPID_WIND_REQUEST_ID",
    "ReadTask",
    "STALE_TIMEOUT",
    "StaleConnectionError",
    "TRANSPORT_ERRORS",
    "WebsocketConnection",
    "websocket_dialer",
]


logger = logging.getLogger(__name__)


# Observations arrive roughly every 60 seconds.
STALE_TIMEOUT = 11 * 60.0
CONNECT_TIMEOUT = 20.0

OBSERVATION_REQUEST_ID = "tempest-live-obs"
RAPID_WIND_REQUEST_ID = "tempest-live-rapid"


class StaleConnectionError(ConnectionError):
    """No frame arrived before the staleness deadline."""


TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    WebSocketException,
    OSError,
    asyncio.TimeoutError,
)


class WebsocketConnection(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> Any: ...

    async def close(self) -> None: ...


Dialer = Callable[[str], Awaitable[WebsocketConnection]]
Post = Callable[[object], None]


async def websocket_dialer(url: str) -> WebsocketConnection:
    """Open ``url`` with :func:`websockets.connect`."""

    return await websockets.connect(url, open_timeout=CONNECT_TIMEOUT)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadTask:
    """Owns one websocket connection for the lifetime of a session."""

    def __init__(
        self,
        session_id: int,
        *,
        url: str,
        device_id: int,
        post: Post,
        dialer: Dialer = websocket_dialer,
        stale_timeout: float = STALE_TIMEOUT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.session_id = session_id
        self._url = url
        self._display_url = url.split("?", 1)[0]
        self._device_id = device_id
        self._post = post
        self._dialer = dialer
        self._stale_timeout = float(stale_timeout)
        self._clock = clock
        self._connection: Optional[WebsocketConnection] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping = False
        self._closed = False

    @property
    def task(self) -> Optional[asyncio.Task[None]]:
        return self._task

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    @property
    def stopping(self) -> bool:
        return self._stopping

    def start(self, previous: Optional[asyncio.Task[None]] = None) -> asyncio.Task[None]:
        """Schedule the task; it starts dialing once ``previous`` has finished."""

        if self._task is not None:
            return self._task
        self._task = asyncio.get_running_loop().create_task(
            self._run(previous), name=f"tempest-live-read-{self.session_id}"
        )
        return self._task

    def cancel(self) -> None:
        """Stop without reporting an error.  Safe to call repeatedly."""

        if self._stopping:
            return
        self._stopping = True
        logger.debug(
            "Cancelling websocket read task.",
            extra={"event": "stream.cancel", "session": self.session_id},
        )
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def close(self) -> None:
        """Close the owned connection exactly once."""

        if self._closed:
            return
        self._closed = True
        connection = self._connection
        self._connection = None
        if connection is None:
            return
        try:
            await connection.close()
        except TRANSPORT_ERRORS as exc:
            logger.debug(
                "Error while closing websocket.",
                extra={"event": "stream.close_error", "session": self.session_id, "error": str(exc)},
            )

    async def wait_closed(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _run(self, previous: Optional[asyncio.Task[None]]) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        try:
            if self._stopping:
                return
            try:
                self._connection = await self._dialer(self._url)
            except TRANSPORT_ERRORS as exc:
                self._report("dial", f"websocket dial: {exc}")
                return
            if self._stopping:
                return
            try:
                await self._subscribe()
            except TRANSPORT_ERRORS as exc:
                self._report("handshake", f"websocket subscribe: {exc}")
                return
            if self._stopping:
                return
            logger.info(
                "Websocket connected.",
                extra={"event": "stream.connected", "session": self.session_id, "device_id": self._device_id},
            )
            self._post(Connected(self.session_id, self._clock()))
            await self._read_loop()
        except Exception as exc:
            logger.exception(
                "Websocket read task crashed.",
                extra={"event": "stream.crash", "session": self.session_id},
            )
            self._report("read", f"websocket session: {exc}")
        finally:
            await self.close()

    async def _subscribe(self) -> None:
        connection = self._connection
        assert connection is not None
        for frame_type, request_id in (
            ("listen_start", OBSERVATION_REQUEST_ID),
            ("listen_rapid_start", RAPID_WIND_REQUEST_ID),
        ):
            payload = {"type": frame_type, "device_id": self._device_id, "id": request_id}
            await connection.send(json.dumps(payload))

    async def _read_loop(self) -> None:
        connection = self._connection
        assert connection is not None
        while not self._stopping:
            try:
                raw = await asyncio.wait_for(connection.recv(), self._stale_timeout)
            except asyncio.TimeoutError:
                stale = StaleConnectionError(f"no data received for {self._stale_timeout:.0f}s")
                self._report("read", f"websocket read: {stale}")
                return
            except TRANSPORT_ERRORS as exc:
                self._report("read", f"websocket read: {exc}")
                return
            try:
                frame = decode_frame(raw, clock=self._clock)
            except FrameDecodeError as exc:
                logger.debug(
                    "Dropping undecodable frame.",
                    extra={"event": "stream.decode_error", "session": self.session_id, "error": str(exc)},
                )
                continue
            if isinstance(frame, (Acknowledgement, Unrecognized)):
                continue
            self._post(frame)

    def _report(self, stage: str, error: str) -> None:
        if self._stopping:
            return
        error = error.replace(self._url, self._display_url)
        logger.warning(
            "Websocket session failed.",
            extra={"event": "stream.error", "session": self.session_id, "stage": stage, "error": error},
        )
        self._post(ConnectionLost(self.session_id, stage, error))
