"""
Planner Trajectory Tracking (Velocity Offboard)

Bridges an external trajectory planner to PX4 through velocity setpoints.

Features:
- Local frame anchored at the first odometry sample
- HOLD at (0, 0, 1) until the planner speaks, then TRACK its position commands
- Staged startup: wait for link -> stream neutral setpoints -> closed loop
- Stale-trajectory warnings and CSV setpoint log

Arming and switching into OFFBOARD are left to the pilot / ground station.
"""

import argparse
import asyncio
import functools
import logging
import signal
import sys
from contextlib import suppress
from typing import Optional, Sequence

# ---- Core infrastructure ----
from velocity_bridge.core.config import ControllerConfig, MQTTConfig, PX4Config
from velocity_bridge.core.control import VelocityCommandComputer
from velocity_bridge.core.control_loop import ControlLoopDriver
from velocity_bridge.core.offboard_helpers import publish_setpoint
from velocity_bridge.core.px4_connection import connect_px4
from velocity_bridge.core.safety_watchdog import trajectory_watchdog
from velocity_bridge.core.startup import StartupSequencer

# ---- Feeds & state ----
from velocity_bridge.utils.logging_setup import setup_logging
from velocity_bridge.utils.shared_state import StateSampler
from velocity_bridge.utils.telemetry_logger import SetpointLogger, default_log_filename
from velocity_bridge.utils.telemetry_watchers import watch_connection, watch_odometry
from velocity_bridge.utils.trajectory_feed import TrajectoryFeed

logger = logging.getLogger(__name__)


# ============================================================
# Helpers
# ============================================================

async def cancel_and_await(tasks):
    """Cancel tasks and await them to avoid warnings/unfinished coroutines."""
    for t in tasks:
        t.cancel()
    for t in tasks:
        with suppress(asyncio.CancelledError):
            await t


def install_signal_handlers(shutdown: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logger.info("Shutdown signal received...")
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)


# ============================================================
# Bridge
# ============================================================

async def run_bridge(
    px4_cfg: PX4Config,
    mqtt_cfg: MQTTConfig,
    ctrl_cfg: ControllerConfig,
) -> None:
    shutdown = asyncio.Event()
    install_signal_handlers(shutdown)

    sampler = StateSampler()
    drone = await connect_px4(px4_cfg.system_address)
    publish = functools.partial(publish_setpoint, drone)

    setpoint_log = SetpointLogger(default_log_filename())
    feed = TrajectoryFeed(mqtt_cfg, sampler)

    watchers = [
        asyncio.create_task(watch_connection(drone, sampler)),
        asyncio.create_task(watch_odometry(drone, sampler)),
        asyncio.create_task(
            trajectory_watchdog(sampler, shutdown, stale_after_s=ctrl_cfg.trajectory_stale_s)
        ),
    ]
    task_logger = asyncio.create_task(setpoint_log.run(shutdown))

    try:
        feed.start()

        sequencer = StartupSequencer(sampler, publish, ctrl_cfg)
        if not await sequencer.run(shutdown):
            logger.info("Shutdown before closed loop (phase=%s)", sequencer.phase.value)
            return

        driver = ControlLoopDriver(
            sampler,
            VelocityCommandComputer(ctrl_cfg),
            publish,
            ctrl_cfg,
            diagnostics=setpoint_log,
        )
        await driver.run(shutdown)

    finally:
        shutdown.set()
        feed.stop()
        await cancel_and_await(watchers)
        with suppress(Exception):
            await task_logger


# ============================================================
# Entry point
# ============================================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Velocity-mode offboard bridge between a trajectory planner and PX4"
    )
    parser.add_argument("--system-address", default=PX4Config.system_address)
    parser.add_argument("--mqtt-host", default=MQTTConfig.host)
    parser.add_argument("--mqtt-port", type=int, default=MQTTConfig.port)
    parser.add_argument("--log-file", default=None, help="Also write log lines to this file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    logger.info("Starting velocity bridge")
    try:
        asyncio.run(
            run_bridge(
                PX4Config(system_address=args.system_address),
                MQTTConfig(host=args.mqtt_host, port=args.mqtt_port),
                ControllerConfig(),
            )
        )
    except KeyboardInterrupt:
        logger.info("Exiting...")
        return 0
    except Exception as e:
        logger.error("Bridge failed: %s", e, exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
