"""
Mode selection and velocity command computation.

Two behaviours:
- HOLD  : proportional pull toward a fixed local hover point, yaw held
- TRACK : proportional pull toward the latest planner position, planner yaw

Pure functions of a StateSnapshot. No I/O, no awaiting.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import ControllerConfig
from .frames import Vec3
from ..utils.shared_state import SensorFault, StateSnapshot

logger = logging.getLogger(__name__)

# MAV_FRAME values
FRAME_LOCAL_NED = 1
FRAME_BODY_NED = 8

# POSITION_TARGET_TYPEMASK: ignore position, acceleration and yaw rate;
# command velocity + yaw.
VELOCITY_YAW_MASK = 0b101111000111


class ControlMode(Enum):
    HOLD = "HOLD"
    TRACK = "TRACK"


@dataclass(frozen=True)
class VelocitySetpoint:
    frame: int
    velocity: Vec3
    yaw: float
    type_mask: int = VELOCITY_YAW_MASK

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (*self.velocity, self.yaw))


def neutral_setpoint(frame: int, yaw: float = 0.0) -> VelocitySetpoint:
    return VelocitySetpoint(frame=frame, velocity=(0.0, 0.0, 0.0), yaw=yaw)


def clamp(v: float, vmin: float, vmax: float) -> float:
    return max(min(v, vmax), vmin)


# ============================================================
# Mode selector
# ============================================================

class ControlModeSelector:
    """
    HOLD until the first trajectory command, then TRACK for good.

    This is a latch, not a liveness check: a silent planner keeps the
    controller tracking its last target.
    """

    def __init__(self):
        self.mode = ControlMode.HOLD
        self.transitions = 0

    def update(self, snapshot: StateSnapshot) -> ControlMode:
        if self.mode is ControlMode.HOLD and snapshot.trajectory is not None:
            self.mode = ControlMode.TRACK
            self.transitions += 1
            logger.info("Trajectory received: HOLD -> TRACK")
        return self.mode


# ============================================================
# Velocity command
# ============================================================

class VelocityCommandComputer:
    def __init__(self, cfg: ControllerConfig):
        self.cfg = cfg

    def compute(self, mode: ControlMode, snapshot: StateSnapshot) -> VelocitySetpoint:
        if mode is ControlMode.TRACK and snapshot.trajectory is not None:
            target = snapshot.trajectory.position
            gain = self.cfg.kp_track
            yaw = snapshot.trajectory.yaw
        else:
            target = self.cfg.hold_target
            gain = self.cfg.kp_hold
            yaw = snapshot.pose.yaw

        velocity = tuple(
            (t - p) * gain for t, p in zip(target, snapshot.pose.position)
        )
        velocity = self._saturate(velocity, self.cfg.max_speed_m_s)

        setpoint = VelocitySetpoint(frame=FRAME_LOCAL_NED, velocity=velocity, yaw=yaw)
        if not setpoint.is_finite():
            raise SensorFault(f"non-finite {mode.value} command: {setpoint}")
        return setpoint

    @staticmethod
    def _saturate(velocity: Vec3, limit: Optional[float]) -> Vec3:
        if limit is None:
            return velocity
        return tuple(clamp(v, -limit, limit) for v in velocity)
