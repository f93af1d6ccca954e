import asyncio
import csv
import logging
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "t", "tick", "mode",
    "pos_x_m", "pos_y_m", "pos_z_m", "yaw_rad",
    "cmd_vx_m_s", "cmd_vy_m_s", "cmd_vz_m_s", "cmd_yaw_rad",
    "traj_x_m", "traj_y_m", "traj_z_m", "traj_age_s",
    "frame", "type_mask",
]


class SetpointLogger:
    """
    Best-effort CSV log of every computed setpoint.

    record() never blocks the control tick: rows go into a bounded queue
    and are dropped (and counted) when the writer falls behind. run() drains
    the queue into <repo_root>/logs/<filename> at ~10 Hz.
    """

    def __init__(
        self,
        filename: str,
        logs_dir: Optional[Path] = None,
        maxsize: int = 500,
    ):
        if logs_dir is None:
            # velocity_bridge/utils/telemetry_logger.py -> repo_root = parents[2]
            logs_dir = Path(__file__).resolve().parents[2] / "logs"
        self.path = Path(logs_dir) / filename
        self.dropped = 0
        self.written = 0
        self._queue: "asyncio.Queue[list]" = asyncio.Queue(maxsize=maxsize)
        self._t0: Optional[float] = None

    def record(self, tick, mode, snapshot, setpoint, now: float) -> bool:
        if self._t0 is None:
            self._t0 = now

        x, y, z = snapshot.pose.position
        vx, vy, vz = setpoint.velocity

        traj = snapshot.trajectory
        if traj is not None:
            tx, ty, tz = (f"{v:.3f}" for v in traj.position)
            age = f"{now - traj.received_at:.3f}"
        else:
            tx = ty = tz = age = ""

        row = [
            f"{now - self._t0:.3f}", tick, mode.value,
            f"{x:.3f}", f"{y:.3f}", f"{z:.3f}", f"{snapshot.pose.yaw:.4f}",
            f"{vx:.3f}", f"{vy:.3f}", f"{vz:.3f}", f"{setpoint.yaw:.4f}",
            tx, ty, tz, age,
            setpoint.frame, setpoint.type_mask,
        ]

        try:
            self._queue.put_nowait(row)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            return False

    def _drain(self, writer) -> None:
        while True:
            try:
                row = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            writer.writerow(row)
            self.written += 1

    async def run(self, shutdown: asyncio.Event, period_s: float = 0.1) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Setpoint logger started → %s", self.path)

        with open(self.path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)

            while not shutdown.is_set():
                self._drain(writer)
                f.flush()
                await asyncio.sleep(period_s)

            self._drain(writer)

        if self.dropped:
            logger.warning("Setpoint logger dropped %d rows", self.dropped)
        logger.info("Setpoint logger stopped (%d rows)", self.written)


def default_log_filename(prefix: str = "velocity_bridge") -> str:
    return f"{prefix}_{time.strftime('%Y%m%d_%H%M%S')}.csv"
