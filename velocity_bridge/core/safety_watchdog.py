"""
Stale trajectory monitor.

TRACK mode is latched: when the planner goes quiet the controller keeps
pulling toward the last target it received. This watchdog only reports
that condition. It never switches the controller back to HOLD.
"""

import asyncio
import logging
from typing import Optional

from ..utils.shared_state import StateSampler, StateSnapshot

logger = logging.getLogger(__name__)


def trajectory_age(snapshot: StateSnapshot, now: float) -> Optional[float]:
    if snapshot.trajectory is None:
        return None
    return now - snapshot.trajectory.received_at


def is_trajectory_stale(snapshot: StateSnapshot, now: float, stale_after_s: float) -> bool:
    age = trajectory_age(snapshot, now)
    return age is not None and age > stale_after_s


async def trajectory_watchdog(
    sampler: StateSampler,
    shutdown: asyncio.Event,
    *,
    stale_after_s: float = 0.5,
    check_rate_hz: float = 10.0,
) -> int:
    """Returns how many times the feed went stale."""
    stale = False
    episodes = 0

    while not shutdown.is_set():
        await asyncio.sleep(1.0 / check_rate_hz)

        snapshot = sampler.snapshot()
        now = sampler.now()

        if is_trajectory_stale(snapshot, now, stale_after_s):
            if not stale:
                stale = True
                episodes += 1
                x, y, z = snapshot.trajectory.position
                logger.warning(
                    "⚠ TRAJECTORY STALE (%.2fs) → still tracking frozen target [%.2f, %.2f, %.2f]",
                    trajectory_age(snapshot, now), x, y, z,
                )
        elif stale:
            stale = False
            logger.info("Trajectory feed resumed")

    logger.info("Trajectory watchdog stopped.")
    return episodes
