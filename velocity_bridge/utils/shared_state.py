import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..core.frames import FrameAnchor, Pose3D, ReferenceFrame, Vec3


class SensorFault(ValueError):
    """Non-finite or otherwise unusable sensor / command input."""


@dataclass(frozen=True)
class LinkStatus:
    connected: bool = False


@dataclass(frozen=True)
class TrajectoryCommand:
    position: Vec3
    velocity: Vec3 = (0.0, 0.0, 0.0)
    acceleration: Vec3 = (0.0, 0.0, 0.0)
    yaw: float = 0.0          # already composed with the reference yaw
    yaw_rate: float = 0.0
    received_at: float = 0.0  # monotonic seconds


@dataclass(frozen=True)
class StateSnapshot:
    pose: Pose3D = field(default_factory=Pose3D)
    frame: Optional[ReferenceFrame] = None
    link: LinkStatus = field(default_factory=LinkStatus)
    trajectory: Optional[TrajectoryCommand] = None
    goal: Optional[Vec3] = None


def _check_finite(name: str, *values: float) -> None:
    for v in values:
        if not math.isfinite(v):
            raise SensorFault(f"{name}: non-finite value {v!r}")


class StateSampler:
    """
    Latest-value store for every asynchronous feed.

    MAVSDK watchers write from the asyncio loop, MQTT callbacks from the
    paho network thread. Each writer swaps in a new frozen object under the
    lock and snapshot() copies all slots under the same lock, so a control
    tick never sees a half-applied update.

    The trajectory slot is a latch: once a command has arrived it is never
    cleared again.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._clock = clock
        self._anchor = FrameAnchor()

        self._pose = Pose3D()
        self._link = LinkStatus()
        self._trajectory: Optional[TrajectoryCommand] = None
        self._goal: Optional[Vec3] = None

    # --------------------------------------------------
    # Ingestion
    # --------------------------------------------------

    def update_pose(self, position: Vec3, yaw: float) -> Pose3D:
        _check_finite("pose", *position, yaw)
        raw = Pose3D(position=tuple(float(v) for v in position), yaw=float(yaw))

        with self._lock:
            self._anchor.capture(raw)
            self._pose = self._anchor.to_local(raw)
            return self._pose

    def update_link(self, connected: bool) -> None:
        with self._lock:
            self._link = LinkStatus(connected=bool(connected))

    def update_trajectory(
        self,
        position: Vec3,
        velocity: Vec3 = (0.0, 0.0, 0.0),
        acceleration: Vec3 = (0.0, 0.0, 0.0),
        yaw: float = 0.0,
        yaw_rate: float = 0.0,
    ) -> TrajectoryCommand:
        _check_finite("trajectory", *position, *velocity, *acceleration, yaw, yaw_rate)

        with self._lock:
            cmd = TrajectoryCommand(
                position=tuple(float(v) for v in position),
                velocity=tuple(float(v) for v in velocity),
                acceleration=tuple(float(v) for v in acceleration),
                yaw=self._anchor.compose_yaw(float(yaw)),
                yaw_rate=float(yaw_rate),
                received_at=self._clock(),
            )
            self._trajectory = cmd
            return cmd

    def update_goal(self, position: Vec3) -> None:
        _check_finite("goal", *position)
        with self._lock:
            self._goal = tuple(float(v) for v in position)

    # --------------------------------------------------
    # Read side
    # --------------------------------------------------

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                pose=self._pose,
                frame=self._anchor.frame,
                link=self._link,
                trajectory=self._trajectory,
                goal=self._goal,
            )

    def now(self) -> float:
        return self._clock()
