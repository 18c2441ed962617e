from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from tempest_live.telemetry.connection import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    StreamSettings,
)
from tempest_live.telemetry.messages import ConnectionLost, Connected, ReconnectDue

from tests.helpers import ScriptedConnection, ScriptedDialer


FAST = StreamSettings(reconnect_delay=0.0)


class Harness:
    """Runs the manager against a real mailbox the way the dashboard loop does."""

    def __init__(self, dialer: ScriptedDialer, settings: StreamSettings = FAST) -> None:
        self.mailbox: asyncio.Queue[object] = asyncio.Queue()
        self.manager = ConnectionManager(
            token="secret-token",
            device_id=5002,
            post=self.mailbox.put_nowait,
            settings=settings,
            dialer=dialer,
        )
        self.history: list[tuple[object, ConnectionStatus]] = []

    async def pump_until(self, condition: Callable[[ConnectionStatus], bool], timeout: float = 2.0) -> None:
        async def _drain() -> None:
            while not condition(self.manager.status):
                message = await self.mailbox.get()
                self.manager.handle(message)
                self.history.append((message, self.manager.status))

        await asyncio.wait_for(_drain(), timeout)

    def attempts_after(self, *kinds: type) -> list[int]:
        return [
            status.reconnect_attempts
            for message, status in self.history
            if isinstance(message, kinds)
        ]


def test_dial_failures_then_success_reset_the_counter() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer(
            [OSError("refused"), OSError("refused"), OSError("refused"), ScriptedConnection()]
        )
        harness = Harness(dialer)
        harness.manager.start()
        assert harness.manager.status.state is ConnectionState.CONNECTING

        await harness.pump_until(lambda status: status.connected)

        assert harness.attempts_after(ConnectionLost, Connected) == [1, 2, 3, 0]
        status = harness.manager.status
        assert status.last_error is None
        assert status.last_connected_at is not None
        assert len(dialer.urls) == 4
        assert all(url.endswith("?token=secret-token") for url in dialer.urls)

        await harness.manager.aclose()
        assert harness.manager.status.state is ConnectionState.TERMINATED
        assert dialer.connections[0].close_calls == 1

    asyncio.run(runner())


def test_reconnect_budget_is_exhausted_after_five_retries() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer([OSError(f"refused #{index}") for index in range(10)])
        harness = Harness(dialer)
        harness.manager.start()

        await harness.pump_until(lambda status: status.exhausted)
        # Let any stray timer fire before checking nothing else was dialed.
        await asyncio.sleep(0.02)

        status = harness.manager.status
        assert status.state is ConnectionState.RECONNECTING
        assert status.reconnect_attempts == 5
        assert not status.reconnecting
        assert status.last_error == "websocket dial: refused #5"
        assert len(dialer.urls) == 6
        assert harness.mailbox.empty()
        assert harness.attempts_after(ConnectionLost) == [1, 2, 3, 4, 5, 5]

        await harness.manager.aclose()

    asyncio.run(runner())


def test_counter_does_not_reset_on_partial_progress() -> None:
    async def runner() -> None:
        failing_subscribe = ScriptedConnection(send_error=OSError("reset during subscribe"))
        dialer = ScriptedDialer([OSError("refused"), failing_subscribe, ScriptedConnection()])
        harness = Harness(dialer)
        harness.manager.start()

        await harness.pump_until(lambda status: status.connected)

        assert harness.attempts_after(ConnectionLost) == [1, 2]
        assert [message.stage for message, _ in harness.history if isinstance(message, ConnectionLost)] == [
            "dial",
            "handshake",
        ]
        await harness.manager.aclose()

    asyncio.run(runner())


def test_read_failure_after_connect_starts_a_fresh_budget() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer(
            [OSError("refused"), ScriptedConnection(hold_open=False), ScriptedConnection()]
        )
        harness = Harness(dialer)
        harness.manager.start()

        await harness.pump_until(
            lambda status: status.connected and len(dialer.connections) == 2
        )

        assert harness.attempts_after(ConnectionLost, Connected) == [1, 0, 1, 0]
        await harness.manager.aclose()

    asyncio.run(runner())


def test_messages_from_previous_sessions_are_ignored() -> None:
    async def runner() -> None:
        harness = Harness(ScriptedDialer([ScriptedConnection()]))
        harness.manager.start()
        await harness.pump_until(lambda status: status.connected)
        current = harness.manager.reader.session_id

        assert not harness.manager.handle(ConnectionLost(current + 7, "read", "old failure"))
        assert not harness.manager.handle(Connected(current - 1, harness.manager.status.last_connected_at))
        assert not harness.manager.handle(ReconnectDue(1))
        assert harness.manager.status.connected
        assert harness.manager.status.last_error is None

        await harness.manager.aclose()

    asyncio.run(runner())


def test_shutdown_is_terminal_and_idempotent() -> None:
    async def runner() -> None:
        harness = Harness(ScriptedDialer([ScriptedConnection()]))
        harness.manager.start()
        await harness.pump_until(lambda status: status.connected)
        reader = harness.manager.reader

        harness.manager.shutdown()
        harness.manager.shutdown()
        await harness.manager.aclose()

        assert harness.manager.status.state is ConnectionState.TERMINATED
        assert reader.stopping and reader.done
        harness.manager.start()
        assert harness.manager.status.state is ConnectionState.TERMINATED

    asyncio.run(runner())


def test_shutdown_cancels_pending_reconnect() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer([OSError("refused"), ScriptedConnection()])
        harness = Harness(dialer, StreamSettings(reconnect_delay=0.05))
        harness.manager.start()
        await harness.pump_until(lambda status: status.reconnecting)

        await harness.manager.aclose()
        await asyncio.sleep(0.1)

        assert harness.mailbox.empty()
        assert len(dialer.urls) == 1

    asyncio.run(runner())


def test_stream_settings_from_mapping() -> None:
    settings = StreamSettings.from_mapping(
        {"reconnect_delay": 2, "max_reconnect_attempts": 3, "stale_timeout": 30, "url": "ws://localhost:9000/data"}
    )

    assert settings.reconnect_delay == 2.0
    assert settings.max_reconnect_attempts == 3
    assert settings.stale_timeout == 30.0
    assert settings.endpoint("a b") == "ws://localhost:9000/data?token=a+b"
    assert StreamSettings.from_mapping(None) == StreamSettings()


@pytest.mark.parametrize(
    "payload",
    [
        {"reconnect_delay": -1},
        {"stale_timeout": 0},
        {"tick_interval": "soon"},
        {"url": "https://ws.weatherflow.com/swd/data"},
    ],
)
def test_stream_settings_rejects_invalid_values(payload: dict) -> None:
    with pytest.raises(ValueError):
        StreamSettings.from_mapping(payload)
