"""
Local reference frame handling.

The controller works in a locally-anchored ENU frame: the first pose sample
defines the origin, and every later position is reported relative to it.
PX4 / MAVSDK speaks NED, so the conversion helpers live here too.

No MAVSDK code here.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class Pose3D:
    position: Vec3 = (0.0, 0.0, 0.0)   # (x, y, z) m
    yaw: float = 0.0                   # rad


@dataclass(frozen=True)
class ReferenceFrame:
    position: Vec3
    yaw: float


# ============================================================
# Angle / frame helpers
# ============================================================

def quat_to_yaw(qw: float, qx: float, qy: float, qz: float) -> float:
    s = 2.0 * (qw * qz + qx * qy)
    c = 1.0 - 2.0 * (qy * qy + qz * qz)
    return math.atan2(s, c)


def angle_wrap(a: float) -> float:
    # Constant time for any finite angle, however large.
    return math.atan2(math.sin(a), math.cos(a))


def ned_to_enu(north: float, east: float, down: float) -> Vec3:
    return (east, north, -down)


def enu_to_ned(x: float, y: float, z: float) -> Vec3:
    return (y, x, -z)


def ned_yaw_to_enu(yaw_ned: float) -> float:
    """NED yaw (clockwise from north) -> ENU yaw (counter-clockwise from east)."""
    return angle_wrap(math.pi / 2.0 - yaw_ned)


def enu_yaw_to_ned(yaw_enu: float) -> float:
    # Same reflection about the NE diagonal, it is its own inverse.
    return angle_wrap(math.pi / 2.0 - yaw_enu)


# ============================================================
# Frame anchor
# ============================================================

class FrameAnchor:
    """
    One-shot latch for the local reference frame.

    capture() records the first pose it sees; every later call is a no-op
    that returns the frame already stored.

    Position is reported relative to the anchor. Yaw is NOT: the current
    vehicle yaw stays absolute, while trajectory yaw commands get the
    reference yaw added (see compose_yaw).
    """

    def __init__(self):
        self._frame: Optional[ReferenceFrame] = None

    @property
    def frame(self) -> Optional[ReferenceFrame]:
        return self._frame

    @property
    def is_anchored(self) -> bool:
        return self._frame is not None

    def capture(self, pose: Pose3D) -> ReferenceFrame:
        if self._frame is None:
            self._frame = ReferenceFrame(position=pose.position, yaw=pose.yaw)
            x0, y0, z0 = pose.position
            logger.info(
                "Reference frame captured: [%.2f, %.2f, %.2f], yaw: %.2f",
                x0, y0, z0, pose.yaw,
            )
        return self._frame

    def to_local(self, pose: Pose3D) -> Pose3D:
        if self._frame is None:
            return pose

        x, y, z = pose.position
        x0, y0, z0 = self._frame.position
        return Pose3D(position=(x - x0, y - y0, z - z0), yaw=pose.yaw)

    def compose_yaw(self, trajectory_yaw: float) -> float:
        offset = self._frame.yaw if self._frame is not None else 0.0
        return trajectory_yaw + offset
