import time
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass
class PX4Config:
    system_address: str = "udpin://0.0.0.0:14540"   # SITL default


@dataclass
class MQTTConfig:
    host: str = "localhost"
    port: int = 1883
    trajectory_topic: str = "planning/pos_cmd"
    goal_topic: str = "move_base_simple/goal"
    qos: int = 0
    keepalive: int = 30
    client_id: str = field(default_factory=lambda: f"velocity_bridge_{int(time.time())}")


@dataclass
class ControllerConfig:
    hold_target: Tuple[float, float, float] = (0.0, 0.0, 1.0)   # local ENU, 1 m above origin
    kp_hold: float = 1.0
    kp_track: float = 2.0
    tick_rate_hz: float = 50.0            # 0.02s
    link_wait_rate_hz: float = 10.0
    neutral_setpoint_count: int = 100
    neutral_setpoint_rate_hz: float = 50.0

    # Off by default: wait forever for the link, no velocity clamp
    link_wait_timeout_s: Optional[float] = None
    max_speed_m_s: Optional[float] = None

    # Diagnostics only, never changes the control mode
    trajectory_stale_s: float = 0.5
