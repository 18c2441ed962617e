from __future__ import annotations

import asyncio

import pytest

from tempest_live.dashboard.loop import DashboardLoop
from tempest_live.dashboard.state import DashboardSnapshot
from tempest_live.telemetry.connection import ConnectionState, StreamSettings

from tests.helpers import (
    ScriptedConnection,
    ScriptedDialer,
    observation_frame,
    rapid_wind_frame,
    strike_frame,
)


SETTINGS = StreamSettings(reconnect_delay=0.0, tick_interval=0.01)


def test_loop_folds_stream_into_snapshots_until_quit() -> None:
    async def runner() -> None:
        connection = ScriptedConnection(
            [
                observation_frame(),
                rapid_wind_frame(1704110403, 3.0, 90),
                rapid_wind_frame(1704110406, 4.0, 95),
                strike_frame(1704110410, 5),
            ]
        )
        ticks: list[DashboardSnapshot] = []
        dashboard: DashboardLoop

        def on_tick(snapshot: DashboardSnapshot) -> None:
            ticks.append(snapshot)
            if snapshot.events:
                dashboard.quit()

        dashboard = DashboardLoop(
            token="secret-token",
            device_id=5002,
            settings=SETTINGS,
            dialer=ScriptedDialer([connection]),
            on_tick=on_tick,
        )
        final = await asyncio.wait_for(dashboard.run(), 2.0)

        assert final.observation.temperature == pytest.approx(21.5)
        assert final.wind_speeds == (3.0, 4.0)
        assert final.events[0].detail == "Lightning 5km away"
        assert final.error is None
        assert any(snapshot.connection.connected for snapshot in ticks)
        assert dashboard.manager.status.state is ConnectionState.TERMINATED
        assert connection.close_calls == 1

    asyncio.run(runner())


def test_loop_reconnects_and_surfaces_errors() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer([OSError("refused"), ScriptedConnection([observation_frame()])])
        seen: list[DashboardSnapshot] = []
        dashboard: DashboardLoop

        def on_tick(snapshot: DashboardSnapshot) -> None:
            seen.append(snapshot)
            if snapshot.observation is not None:
                dashboard.quit()

        dashboard = DashboardLoop(
            token="t",
            device_id=5002,
            settings=SETTINGS,
            dialer=dialer,
            on_tick=on_tick,
        )
        final = await asyncio.wait_for(dashboard.run(), 2.0)

        assert len(dialer.urls) == 2
        assert final.connection.reconnect_attempts == 0
        assert final.error is None

    asyncio.run(runner())


def test_quit_before_run_returns_immediately() -> None:
    async def runner() -> None:
        dialer = ScriptedDialer([])
        dashboard = DashboardLoop(token="t", device_id=1, settings=SETTINGS, dialer=dialer)
        dashboard.quit()
        dashboard.quit()

        snapshot = await asyncio.wait_for(dashboard.run(), 1.0)

        assert snapshot.observation is None
        assert dialer.urls == []
        assert dashboard.manager.status.state is ConnectionState.TERMINATED

    asyncio.run(runner())


def test_loop_cannot_run_twice() -> None:
    async def runner() -> None:
        dashboard = DashboardLoop(
            token="t",
            device_id=1,
            settings=SETTINGS,
            dialer=ScriptedDialer([ScriptedConnection()]),
        )
        first = asyncio.get_running_loop().create_task(dashboard.run())
        await asyncio.sleep(0.02)

        with pytest.raises(RuntimeError):
            await dashboard.run()

        dashboard.quit()
        await asyncio.wait_for(first, 1.0)

    asyncio.run(runner())
