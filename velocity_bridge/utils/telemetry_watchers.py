import logging

from mavsdk import System

from ..core.frames import ned_to_enu, ned_yaw_to_enu, quat_to_yaw
from .shared_state import SensorFault, StateSampler

logger = logging.getLogger(__name__)


def ingest_odometry(odom, sampler: StateSampler) -> bool:
    """Feed one MAVSDK Odometry sample (NED) into the sampler as local ENU."""
    pos = odom.position_body
    q = odom.q
    try:
        sampler.update_pose(
            ned_to_enu(pos.x_m, pos.y_m, pos.z_m),
            ned_yaw_to_enu(quat_to_yaw(q.w, q.x, q.y, q.z)),
        )
    except SensorFault as e:
        logger.warning("Dropping pose sample: %s", e)
        return False
    return True


async def watch_odometry(drone: System, sampler: StateSampler):
    async for odom in drone.telemetry.odometry():
        ingest_odometry(odom, sampler)


async def watch_connection(drone: System, sampler: StateSampler):
    connected = None
    async for state in drone.core.connection_state():
        sampler.update_link(state.is_connected)
        if state.is_connected != connected:
            connected = state.is_connected
            if connected:
                logger.info("-- Link up")
            else:
                logger.warning("-- Link lost")
