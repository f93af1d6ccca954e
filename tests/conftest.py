import asyncio

import pytest

from velocity_bridge.core.config import ControllerConfig
from velocity_bridge.utils.shared_state import StateSampler


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


class RecordingPublisher:
    def __init__(self):
        self.setpoints = []

    async def __call__(self, setpoint):
        self.setpoints.append(setpoint)


async def no_sleep(_dt):
    await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sampler(clock):
    return StateSampler(clock=clock)


@pytest.fixture
def cfg():
    return ControllerConfig()


@pytest.fixture
def publisher():
    return RecordingPublisher()
