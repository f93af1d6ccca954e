"""
MQTT ingestion for the planner's trajectory commands and goal points.

Trajectory payload (JSON), only "position" is required:
    {"position": [x, y, z], "velocity": [..], "acceleration": [..],
     "yaw": rad, "yaw_dot": rad/s}

Goal payload (JSON):
    {"x": .., "y": .., "z": ..}      # z optional

paho runs its network loop on its own thread; every write goes through
the StateSampler lock.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import paho.mqtt.client as mqtt

from ..core.config import MQTTConfig
from .shared_state import StateSampler

logger = logging.getLogger(__name__)


def _vec3(obj: Dict[str, Any], key: str, required: bool = False) -> Tuple[float, float, float]:
    value = obj.get(key)
    if value is None:
        if required:
            raise ValueError(f"missing '{key}'")
        return (0.0, 0.0, 0.0)
    if isinstance(value, dict):
        value = [value.get("x", 0.0), value.get("y", 0.0), value.get("z", 0.0)]
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError(f"'{key}' must be a 3-vector")
    return tuple(float(v) for v in value)


def parse_trajectory_payload(payload: bytes) -> Dict[str, Any]:
    obj = json.loads(payload.decode("utf-8", errors="replace"))
    if not isinstance(obj, dict):
        raise ValueError("trajectory payload must be a JSON object")

    return {
        "position": _vec3(obj, "position", required=True),
        "velocity": _vec3(obj, "velocity"),
        "acceleration": _vec3(obj, "acceleration"),
        "yaw": float(obj.get("yaw", 0.0)),
        "yaw_rate": float(obj.get("yaw_dot", obj.get("yaw_rate", 0.0))),
    }


def parse_goal_payload(payload: bytes) -> Tuple[float, float, float]:
    obj = json.loads(payload.decode("utf-8", errors="replace"))
    if not isinstance(obj, dict) or "x" not in obj or "y" not in obj:
        raise ValueError("goal payload must be a JSON object with x and y")
    return (float(obj["x"]), float(obj["y"]), float(obj.get("z", 0.0)))


class TrajectoryFeed:
    def __init__(self, cfg: MQTTConfig, sampler: StateSampler):
        self.cfg = cfg
        self.sampler = sampler
        self.received = 0
        self.rejected = 0
        self._client: Optional[mqtt.Client] = None

    # --------------------------------------------------
    # Message handling (runs on the paho thread)
    # --------------------------------------------------

    def handle_message(self, topic: str, payload: bytes) -> bool:
        try:
            if topic == self.cfg.trajectory_topic:
                self.sampler.update_trajectory(**parse_trajectory_payload(payload))
            elif topic == self.cfg.goal_topic:
                self.sampler.update_goal(parse_goal_payload(payload))
            else:
                logger.debug("Ignoring message on %s", topic)
                return False
        except (ValueError, TypeError) as e:
            # SensorFault is a ValueError too
            self.rejected += 1
            logger.warning("Invalid payload on %s: %s", topic, e)
            return False

        self.received += 1
        return True

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            logger.info("[MQTT] Connected to %s:%d", self.cfg.host, self.cfg.port)
            client.subscribe(self.cfg.trajectory_topic, qos=self.cfg.qos)
            client.subscribe(self.cfg.goal_topic, qos=self.cfg.qos)
        else:
            logger.error("[MQTT] Connect failed reason_code=%s", reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        logger.warning("[MQTT] Disconnected reason_code=%s", reason_code)

    def _on_connect_fail(self, client, userdata):
        logger.warning(
            "[MQTT] Broker %s:%d unreachable, retrying (holding position meanwhile)",
            self.cfg.host, self.cfg.port,
        )

    def _on_message(self, client, userdata, msg):
        self.handle_message(msg.topic, msg.payload)

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    def start(self) -> None:
        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.cfg.client_id,
            clean_session=True,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.on_connect_fail = self._on_connect_fail

        # The planner may come up after us: paho keeps retrying on its own thread.
        client.connect_async(self.cfg.host, self.cfg.port, keepalive=self.cfg.keepalive)
        client.loop_start()
        logger.info("[MQTT] Connecting to %s:%d in background", self.cfg.host, self.cfg.port)
        self._client = client

    def stop(self) -> None:
        if self._client is None:
            return
        self._client.loop_stop()
        self._client.disconnect()
        self._client = None
