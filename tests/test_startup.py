"""
Unit tests for the offboard startup sequence
"""

import asyncio

import pytest

from velocity_bridge.core.config import ControllerConfig
from velocity_bridge.core.control import FRAME_BODY_NED
from velocity_bridge.core.startup import LinkTimeoutError, StartupPhase, StartupSequencer


class SleepRecorder:
    """Fake sleep: records durations, optionally runs a hook after N calls."""

    def __init__(self, hook=None, after=None):
        self.calls = []
        self.hook = hook
        self.after = after

    async def __call__(self, dt):
        self.calls.append(dt)
        if self.hook is not None and len(self.calls) == self.after:
            self.hook()


class TestWaitLink:
    """WAIT_LINK phase"""

    def test_waits_until_connected(self, sampler, publisher, cfg):
        sleep = SleepRecorder(hook=lambda: sampler.update_link(True), after=7)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)

        assert asyncio.run(seq.wait_for_link(asyncio.Event()))
        assert sleep.calls == [pytest.approx(0.1)] * 7
        assert publisher.setpoints == []

    def test_phase_observable_while_waiting(self, sampler, publisher, cfg):
        phases = []
        seq = None

        def hook():
            phases.append(seq.phase)
            sampler.update_link(True)

        sleep = SleepRecorder(hook=hook, after=3)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)
        asyncio.run(seq.wait_for_link(asyncio.Event()))
        assert phases == [StartupPhase.WAIT_LINK]

    def test_shutdown_while_waiting(self, sampler, publisher, cfg):
        shutdown = asyncio.Event()
        sleep = SleepRecorder(hook=shutdown.set, after=2)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)

        assert asyncio.run(seq.run(shutdown)) is False
        assert seq.phase is StartupPhase.WAIT_LINK
        assert publisher.setpoints == []

    def test_optional_timeout(self, sampler, publisher, clock):
        cfg = ControllerConfig(link_wait_timeout_s=1.0)

        async def advancing_sleep(dt):
            clock.t += dt

        seq = StartupSequencer(sampler, publisher, cfg, sleep=advancing_sleep, clock=clock)
        with pytest.raises(LinkTimeoutError):
            asyncio.run(seq.run(asyncio.Event()))
        assert publisher.setpoints == []


class TestNeutralStream:
    """STREAM_NEUTRAL phase and full sequence"""

    def test_streams_exact_count_in_body_frame(self, sampler, publisher, cfg):
        sampler.update_link(True)
        sleep = SleepRecorder()
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)

        assert asyncio.run(seq.run(asyncio.Event()))
        assert seq.phase is StartupPhase.ACTIVE
        assert len(publisher.setpoints) == 100
        assert seq.neutral_sent == 100
        assert all(sp.frame == FRAME_BODY_NED for sp in publisher.setpoints)
        assert all(sp.velocity == (0.0, 0.0, 0.0) for sp in publisher.setpoints)
        assert sleep.calls == [pytest.approx(0.02)] * 100

    @pytest.mark.parametrize("wait_polls", [1, 5, 40])
    def test_count_independent_of_link_wait(self, sampler, publisher, wait_polls):
        cfg = ControllerConfig(neutral_setpoint_count=12)
        sleep = SleepRecorder(hook=lambda: sampler.update_link(True), after=wait_polls)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)

        assert asyncio.run(seq.run(asyncio.Event()))
        assert len(publisher.setpoints) == 12

    def test_shutdown_mid_stream(self, sampler, publisher, cfg):
        sampler.update_link(True)
        shutdown = asyncio.Event()
        sleep = SleepRecorder(hook=shutdown.set, after=10)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=sleep)

        assert asyncio.run(seq.run(shutdown)) is False
        assert seq.phase is StartupPhase.STREAM_NEUTRAL
        assert len(publisher.setpoints) == 10

    def test_one_shot(self, sampler, publisher):
        sampler.update_link(True)
        cfg = ControllerConfig(neutral_setpoint_count=1)
        seq = StartupSequencer(sampler, publisher, cfg, sleep=SleepRecorder())

        async def run_twice():
            assert await seq.run(asyncio.Event())
            with pytest.raises(RuntimeError):
                await seq.run(asyncio.Event())

        asyncio.run(run_twice())
