"""Connection lifecycle state machine for the Tempest websocket.

:class:`ConnectionManager` owns the :class:`ConnectionStatus`.  It never runs
concurrently with itself: the dashboard loop feeds it the lifecycle messages
drained from the mailbox (:class:`~tempest_live.telemetry.messages.Connected`,
:class:`~tempest_live.telemetry.messages.ConnectionLost` and
:class:`~tempest_live.telemetry.messages.ReconnectDue`) and it reacts by
spawning read tasks or arming the reconnect timer.

Retries use a fixed delay and a bounded budget.  The attempt counter only
resets once a connection is open and subscribed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlencode

from .messages import ConnectionLost, Connected, ReconnectDue
from .read_task import STALE_TIMEOUT, Dialer, ReadTask, websocket_dialer

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "DEFAULT_STREAM_URL",
    "MAX_RECONNECT_ATTEMPTS",
    "RECONNECT_DELAY",
    "StreamSettings",
]


logger = logging.getLogger(__name__)


DEFAULT_STREAM_URL = "wss://ws.weatherflow.com/swd/data"
RECONNECT_DELAY = 5.0
MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_TICK_INTERVAL = 1.0


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    """Read-only view of the lifecycle state.

    ``exhausted`` marks the terminal-error sub-state of ``RECONNECTING``
    reached once the reconnect budget is spent.
    """

    state: ConnectionState = ConnectionState.DISCONNECTED
    last_error: Optional[str] = None
    reconnect_attempts: int = 0
    last_connected_at: Optional[datetime] = None
    exhausted: bool = False

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def reconnecting(self) -> bool:
        return self.state is ConnectionState.RECONNECTING and not self.exhausted


@dataclass(frozen=True, slots=True)
class StreamSettings:
    """Tunables of the websocket stream loaded from the ``[stream]`` table."""

    url: str = DEFAULT_STREAM_URL
    reconnect_delay: float = RECONNECT_DELAY
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    stale_timeout: float = STALE_TIMEOUT
    tick_interval: float = DEFAULT_TICK_INTERVAL

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "StreamSettings":
        if not payload:
            return cls()
        defaults = cls()

        def _positive(key: str, default: float, *, allow_zero: bool = False) -> float:
            value = payload.get(key)
            if value is None:
                return default
            try:
                numeric = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"stream.{key} must be a number, got {value!r}") from None
            if numeric < 0 or (numeric == 0 and not allow_zero):
                raise ValueError(f"stream.{key} must be positive, got {value!r}")
            return numeric

        url = payload.get("url", defaults.url)
        if not isinstance(url, str) or not url.startswith(("ws://", "wss://")):
            raise ValueError(f"stream.url must be a ws:// or wss:// URL, got {url!r}")
        return cls(
            url=url,
            reconnect_delay=_positive("reconnect_delay", defaults.reconnect_delay, allow_zero=True),
            max_reconnect_attempts=int(
                _positive(
                    "max_reconnect_attempts",
                    defaults.max_reconnect_attempts,
                    allow_zero=True,
                )
            ),
            stale_timeout=_positive("stale_timeout", defaults.stale_timeout),
            tick_interval=_positive("tick_interval", defaults.tick_interval),
        )

    def endpoint(self, token: str) -> str:
        return f"{self.url}?{urlencode({'token': token})}"


class ConnectionManager:
    """State machine driving dial, subscription and reconnect scheduling."""

    def __init__(
        self,
        *,
        token: str,
        device_id: int,
        post: Callable[[object], None],
        settings: Optional[StreamSettings] = None,
        dialer: Dialer = websocket_dialer,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or StreamSettings()
        self.device_id = int(device_id)
        self._endpoint = self.settings.endpoint(token)
        self._post = post
        self._dialer = dialer
        self._clock = clock
        self._status = ConnectionStatus()
        self._reader: Optional[ReadTask] = None
        self._next_session = 1
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def reader(self) -> Optional[ReadTask]:
        return self._reader

    def start(self) -> None:
        """Begin the first connection attempt."""

        if self._status.state is not ConnectionState.DISCONNECTED:
            return
        self._connect()

    def handle(self, message: object) -> bool:
        """Apply a lifecycle ``message``; return ``True`` when the status changed."""

        if isinstance(message, Connected):
            return self._on_connected(message)
        if isinstance(message, ConnectionLost):
            return self._on_connection_lost(message)
        if isinstance(message, ReconnectDue):
            return self._on_reconnect_due(message)
        return False

    def shutdown(self) -> None:
        """Terminate the session; idempotent."""

        if self._status.state is ConnectionState.TERMINATED:
            return
        self._cancel_reconnect_timer()
        if self._reader is not None:
            self._reader.cancel()
        self._transition(ConnectionState.TERMINATED)

    async def aclose(self) -> None:
        """Shut down and wait until the read task released its socket."""

        self.shutdown()
        reader = self._reader
        if reader is not None:
            await reader.wait_closed()
            await reader.close()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _connect(self) -> None:
        previous = self._reader.task if self._reader is not None else None
        session_id = self._next_session
        self._next_session += 1
        options: dict[str, Any] = {}
        if self._clock is not None:
            options["clock"] = self._clock
        self._reader = ReadTask(
            session_id,
            url=self._endpoint,
            device_id=self.device_id,
            post=self._post,
            dialer=self._dialer,
            stale_timeout=self.settings.stale_timeout,
            **options,
        )
        self._transition(ConnectionState.CONNECTING)
        self._reader.start(previous)

    def _on_connected(self, message: Connected) -> bool:
        if not self._is_current(message.session_id):
            return False
        self._transition(
            ConnectionState.CONNECTED,
            last_error=None,
            reconnect_attempts=0,
            last_connected_at=message.connected_at,
            exhausted=False,
        )
        return True

    def _on_connection_lost(self, message: ConnectionLost) -> bool:
        if not self._is_current(message.session_id):
            return False
        attempts = self._status.reconnect_attempts
        if attempts < self.settings.max_reconnect_attempts:
            attempts += 1
            self._transition(
                ConnectionState.RECONNECTING,
                last_error=message.error,
                reconnect_attempts=attempts,
                exhausted=False,
            )
            self._schedule_reconnect(attempts)
            return True
        self._transition(
            ConnectionState.RECONNECTING,
            last_error=message.error,
            exhausted=True,
        )
        logger.error(
            "Reconnect budget exhausted; giving up.",
            extra={
                "event": "connection.exhausted",
                "attempts": attempts,
                "error": message.error,
            },
        )
        return True

    def _on_reconnect_due(self, message: ReconnectDue) -> bool:
        self._reconnect_timer = None
        status = self._status
        if not status.reconnecting or message.attempt != status.reconnect_attempts:
            logger.debug(
                "Ignoring stale reconnect timer.",
                extra={"event": "connection.stale_timer", "attempt": message.attempt, "state": status.state.value},
            )
            return False
        self._connect()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_current(self, session_id: int) -> bool:
        if self._status.state is ConnectionState.TERMINATED:
            return False
        reader = self._reader
        return reader is not None and reader.session_id == session_id

    def _schedule_reconnect(self, attempt: int) -> None:
        self._cancel_reconnect_timer()
        delay = self.settings.reconnect_delay
        logger.info(
            "Scheduling websocket reconnect.",
            extra={
                "event": "connection.reconnect_scheduled",
                "attempt": attempt,
                "max_attempts": self.settings.max_reconnect_attempts,
                "delay": delay,
            },
        )
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(delay, self._post, ReconnectDue(attempt))

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _transition(self, state: ConnectionState, **changes: Any) -> None:
        previous = self._status.state
        self._status = replace(self._status, state=state, **changes)
        if previous is not state:
            logger.info(
                "Connection state changed.",
                extra={
                    "event": "connection.transition",
                    "from": previous.value,
                    "to": state.value,
                    "attempts": self._status.reconnect_attempts,
                },
            )
