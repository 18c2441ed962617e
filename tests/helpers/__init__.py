"""Shared fakes for the tempest-live test-suite."""

from .frames import (
    OBSERVATION_VALUES,
    ack_frame,
    observation_frame,
    precipitation_frame,
    rapid_wind_frame,
    strike_frame,
)
from .http import FakeResponse, FakeSession
from .websocket import ScriptedConnection, ScriptedDialer, wait_for

__all__ = [
    "FakeResponse",
    "FakeSession",
    "OBSERVATION_VALUES",
    "ScriptedConnection",
    "ScriptedDialer",
    "ack_frame",
    "observation_frame",
    "precipitation_frame",
    "rapid_wind_frame",
    "strike_frame",
    "wait_for",
]
