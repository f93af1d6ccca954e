import logging

from mavsdk import System

logger = logging.getLogger(__name__)


async def connect_px4(system_address: str) -> System:
    """
    Open the MAVSDK link without waiting for the vehicle.

    The link flag is watched by watch_connection(); the startup sequencer
    decides when the vehicle counts as connected.
    """
    drone = System()
    logger.info("Connecting to PX4 at %s", system_address)
    await drone.connect(system_address=system_address)
    return drone
