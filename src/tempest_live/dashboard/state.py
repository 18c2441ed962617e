"""Bounded dashboard state folded from mailbox messages."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Deque, Optional

from ..telemetry.connection import ConnectionStatus
from ..telemetry.messages import ConnectionLost, Connected
from ..telemetry.records import ObservationRecord, RapidWindSample, WeatherEvent

__all__ = [
    "DashboardSnapshot",
    "EVENT_LOG_SIZE",
    "StateAggregator",
    "WIND_HISTORY_SIZE",
]


WIND_HISTORY_SIZE = 20
EVENT_LOG_SIZE = 10


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """Immutable view handed to presentation.

    ``wind_history`` is ordered oldest first, ``events`` newest first.
    """

    observation: Optional[ObservationRecord] = None
    rapid_wind: Optional[RapidWindSample] = None
    wind_history: tuple[RapidWindSample, ...] = ()
    events: tuple[WeatherEvent, ...] = ()
    connection: ConnectionStatus = ConnectionStatus()
    last_update: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def wind_speeds(self) -> tuple[float, ...]:
        return tuple(sample.wind_speed for sample in self.wind_history)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StateAggregator:
    """Single-writer reducer for the dashboard working set.

    Only the dashboard loop calls :meth:`apply`; readers go through
    :meth:`snapshot`, which copies the bounded buffers into tuples.
    """

    def __init__(
        self,
        *,
        wind_history_size: int = WIND_HISTORY_SIZE,
        event_log_size: int = EVENT_LOG_SIZE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._clock = clock
        self._observation: Optional[ObservationRecord] = None
        self._rapid_wind: Optional[RapidWindSample] = None
        self._wind_history: Deque[RapidWindSample] = deque(maxlen=wind_history_size)
        self._events: Deque[WeatherEvent] = deque(maxlen=event_log_size)
        self._connection = ConnectionStatus()
        self._last_update: Optional[datetime] = None
        self._error: Optional[str] = None

    def apply(self, message: object, connection: Optional[ConnectionStatus] = None) -> None:
        """Fold ``message`` into the state.

        ``connection`` is the lifecycle status after the manager handled the
        same message; it is copied for every message kind.
        """

        if connection is not None:
            self._connection = connection
        if isinstance(message, ObservationRecord):
            self._observation = message
            self._last_update = self._clock()
            self._error = None
        elif isinstance(message, RapidWindSample):
            self._rapid_wind = message
            self._wind_history.append(message)
            self._last_update = self._clock()
        elif isinstance(message, WeatherEvent):
            self._events.appendleft(message)
            self._last_update = self._clock()
        elif isinstance(message, Connected):
            self._error = None
        elif isinstance(message, ConnectionLost):
            self._error = message.error

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            observation=self._observation,
            rapid_wind=self._rapid_wind,
            wind_history=tuple(self._wind_history),
            events=tuple(self._events),
            connection=self._connection,
            last_update=self._last_update,
            error=self._error,
        )
