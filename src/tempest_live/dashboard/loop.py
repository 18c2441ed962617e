"""Single consumer loop draining the dashboard mailbox."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..telemetry.connection import ConnectionManager, StreamSettings
from ..telemetry.messages import ConnectionLost, Connected, Tick
from ..telemetry.read_task import Dialer, websocket_dialer
from .state import DashboardSnapshot, StateAggregator

__all__ = ["DashboardLoop"]


logger = logging.getLogger(__name__)

_STOP = object()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardLoop:
    """Feed lifecycle and telemetry messages to the manager and aggregator.

    Every producer (read tasks, reconnect timers and the ticker) goes through
    :meth:`post`; only :meth:`run` mutates state, in mailbox order.
    """

    def __init__(
        self,
        *,
        token: str,
        device_id: int,
        settings: Optional[StreamSettings] = None,
        dialer: Dialer = websocket_dialer,
        aggregator: Optional[StateAggregator] = None,
        on_tick: Optional[Callable[[DashboardSnapshot], None]] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.settings = settings or StreamSettings()
        self._clock = clock
        self._mailbox: asyncio.Queue[object] = asyncio.Queue()
        self._aggregator = aggregator or StateAggregator(clock=clock)
        self._manager = ConnectionManager(
            token=token,
            device_id=device_id,
            post=self.post,
            settings=self.settings,
            dialer=dialer,
            clock=clock,
        )
        self._on_tick = on_tick
        self._ticker: Optional[asyncio.Task[None]] = None
        self._quit = False
        self._running = False

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    def post(self, message: object) -> None:
        self._mailbox.put_nowait(message)

    def snapshot(self) -> DashboardSnapshot:
        return self._aggregator.snapshot()

    def quit(self) -> None:
        """Stop the loop; idempotent."""

        if self._quit:
            return
        self._quit = True
        logger.info("Stopping dashboard loop.", extra={"event": "dashboard.quit"})
        self._manager.shutdown()
        if self._ticker is not None:
            self._ticker.cancel()
        self.post(_STOP)

    async def run(self) -> DashboardSnapshot:
        """Drain the mailbox until :meth:`quit`; return the final snapshot."""

        if self._running:
            raise RuntimeError("dashboard loop is already running")
        self._running = True
        if self._quit:
            return self.snapshot()
        self._manager.start()
        self._ticker = asyncio.get_running_loop().create_task(
            self._tick_forever(), name="tempest-live-ticker"
        )
        try:
            while True:
                message = await self._mailbox.get()
                if message is _STOP:
                    break
                self._dispatch(message)
        finally:
            self._manager.shutdown()
            ticker = self._ticker
            if ticker is not None:
                ticker.cancel()
                await asyncio.gather(ticker, return_exceptions=True)
            await self._manager.aclose()
        return self.snapshot()

    def _dispatch(self, message: object) -> None:
        handled = self._manager.handle(message)
        if isinstance(message, (Connected, ConnectionLost)) and not handled:
            logger.debug(
                "Dropping lifecycle message from a previous session.",
                extra={"event": "dashboard.stale_message", "session": message.session_id},
            )
            return
        self._aggregator.apply(message, self._manager.status)
        if isinstance(message, Tick) and self._on_tick is not None:
            self._on_tick(self._aggregator.snapshot())

    async def _tick_forever(self) -> None:
        interval = self.settings.tick_interval
        while True:
            await asyncio.sleep(interval)
            self.post(Tick(self._clock()))
