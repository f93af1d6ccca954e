"""
Fixed-rate closed loop.

Each tick: one snapshot -> mode -> setpoint -> publish -> diagnostics,
then sleep until the next tick boundary. Runs until shutdown is set.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import ControllerConfig
from .control import (
    FRAME_LOCAL_NED,
    ControlModeSelector,
    VelocityCommandComputer,
    VelocitySetpoint,
    neutral_setpoint,
)
from ..utils.shared_state import SensorFault, StateSampler
from ..utils.telemetry_logger import SetpointLogger

logger = logging.getLogger(__name__)


class ControlLoopDriver:
    def __init__(
        self,
        sampler: StateSampler,
        computer: VelocityCommandComputer,
        publish: Callable[[VelocitySetpoint], Awaitable[None]],
        cfg: ControllerConfig,
        *,
        selector: Optional[ControlModeSelector] = None,
        diagnostics: Optional[SetpointLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.sampler = sampler
        self.computer = computer
        self.publish = publish
        self.cfg = cfg
        self.selector = selector or ControlModeSelector()
        self.diagnostics = diagnostics
        self._sleep = sleep

        self.ticks = 0
        self.faults = 0

    async def tick(self) -> VelocitySetpoint:
        snapshot = self.sampler.snapshot()
        mode = self.selector.update(snapshot)

        try:
            setpoint = self.computer.compute(mode, snapshot)
        except SensorFault as e:
            self.faults += 1
            logger.error("SensorFault: %s, sending zero velocity", e)
            setpoint = neutral_setpoint(FRAME_LOCAL_NED, yaw=snapshot.pose.yaw)

        await self.publish(setpoint)
        self.ticks += 1

        vx, vy, vz = setpoint.velocity
        logger.debug(
            "[%s] tick=%d vel=(%.2f, %.2f, %.2f) yaw=%.2f",
            mode.value, self.ticks, vx, vy, vz, setpoint.yaw,
        )
        if self.diagnostics is not None:
            self.diagnostics.record(self.ticks, mode, snapshot, setpoint, self.sampler.now())

        return setpoint

    async def run(self, shutdown: asyncio.Event) -> None:
        period = 1.0 / self.cfg.tick_rate_hz
        loop = asyncio.get_running_loop()

        logger.info("▶ Control loop running at %.0f Hz", self.cfg.tick_rate_hz)
        next_tick = loop.time()

        while not shutdown.is_set():
            await self.tick()

            next_tick += period
            delay = next_tick - loop.time()
            if delay < 0.0:
                # Overrun: restart the schedule instead of bursting late ticks.
                logger.debug("Tick %d overran by %.1f ms", self.ticks, -delay * 1000.0)
                next_tick = loop.time()
                delay = 0.0

            await self._sleep(delay)

        logger.info("Control loop stopped after %d ticks", self.ticks)
