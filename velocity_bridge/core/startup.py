"""
Offboard startup sequence.

WAIT_LINK -> STREAM_NEUTRAL -> ACTIVE

PX4 refuses to enter offboard mode unless setpoints are already flowing,
so a burst of neutral (zero, body-frame) setpoints is streamed once the
link is up. The sequencer runs once; the control loop takes over after it.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

from .config import ControllerConfig
from .control import FRAME_BODY_NED, VelocitySetpoint, neutral_setpoint
from ..utils.shared_state import StateSampler

logger = logging.getLogger(__name__)

Publisher = Callable[[VelocitySetpoint], Awaitable[None]]


class StartupPhase(Enum):
    WAIT_LINK = "WAIT_LINK"
    STREAM_NEUTRAL = "STREAM_NEUTRAL"
    ACTIVE = "ACTIVE"


class LinkTimeoutError(RuntimeError):
    pass


class StartupSequencer:
    def __init__(
        self,
        sampler: StateSampler,
        publish: Publisher,
        cfg: ControllerConfig,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sampler = sampler
        self.publish = publish
        self.cfg = cfg
        self._sleep = sleep
        self._clock = clock

        self.phase = StartupPhase.WAIT_LINK
        self.neutral_sent = 0
        self._started = False

    def link_ready(self) -> bool:
        return self.sampler.snapshot().link.connected

    async def wait_for_link(self, shutdown: asyncio.Event) -> bool:
        """
        Poll the link flag at link_wait_rate_hz until connected.

        Without link_wait_timeout_s this blocks for as long as the flight
        controller stays silent.
        """
        self.phase = StartupPhase.WAIT_LINK
        dt = 1.0 / self.cfg.link_wait_rate_hz
        log_every = max(1, int(round(self.cfg.link_wait_rate_hz)))
        timeout = self.cfg.link_wait_timeout_s

        t0 = self._clock()
        polls = 0
        while not shutdown.is_set():
            if self.link_ready():
                logger.info("✔ Connected to flight controller")
                return True

            waited = self._clock() - t0
            if timeout is not None and waited >= timeout:
                raise LinkTimeoutError(f"no flight controller link after {waited:.1f}s")

            if polls % log_every == 0:
                logger.info("Waiting for flight controller link... (%.0fs)", waited)
            polls += 1

            await self._sleep(dt)

        return False

    async def stream_neutral(self, shutdown: asyncio.Event) -> bool:
        self.phase = StartupPhase.STREAM_NEUTRAL
        dt = 1.0 / self.cfg.neutral_setpoint_rate_hz
        setpoint = neutral_setpoint(FRAME_BODY_NED)

        logger.info("Pre-streaming %d neutral setpoints...", self.cfg.neutral_setpoint_count)
        while self.neutral_sent < self.cfg.neutral_setpoint_count:
            if shutdown.is_set():
                return False
            await self.publish(setpoint)
            self.neutral_sent += 1
            await self._sleep(dt)

        return True

    async def run(self, shutdown: asyncio.Event) -> bool:
        """True once ACTIVE; False if shutdown was requested first."""
        if self._started:
            raise RuntimeError("startup sequence already ran")
        self._started = True

        if not await self.wait_for_link(shutdown):
            return False
        if not await self.stream_neutral(shutdown):
            return False

        self.phase = StartupPhase.ACTIVE
        logger.info("Startup complete, entering closed loop")
        return True
