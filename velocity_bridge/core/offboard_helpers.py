import math

from mavsdk import System
from mavsdk.offboard import VelocityBodyYawspeed, VelocityNedYaw

from .control import FRAME_BODY_NED, FRAME_LOCAL_NED, VelocitySetpoint
from .frames import enu_to_ned, enu_yaw_to_ned


def to_mavsdk(setpoint: VelocitySetpoint):
    """
    Translate a local-ENU setpoint into the MAVSDK offboard message.

    LOCAL_NED -> VelocityNedYaw (NED velocity, yaw in degrees)
    BODY_NED  -> VelocityBodyYawspeed (FRD velocity, yaw rate 0)
    """
    if setpoint.frame == FRAME_BODY_NED:
        vx, vy, vz = setpoint.velocity
        # FLU -> FRD
        return VelocityBodyYawspeed(vx, -vy, -vz, 0.0)

    if setpoint.frame == FRAME_LOCAL_NED:
        north, east, down = enu_to_ned(*setpoint.velocity)
        yaw_deg = math.degrees(enu_yaw_to_ned(setpoint.yaw))
        return VelocityNedYaw(north, east, down, yaw_deg)

    raise ValueError(f"unsupported coordinate frame: {setpoint.frame}")


async def publish_setpoint(drone: System, setpoint: VelocitySetpoint) -> None:
    msg = to_mavsdk(setpoint)
    if isinstance(msg, VelocityBodyYawspeed):
        await drone.offboard.set_velocity_body(msg)
    else:
        await drone.offboard.set_velocity_ned(msg)
