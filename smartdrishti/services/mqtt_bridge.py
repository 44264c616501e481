"""
MQTT subscriber feeding device telemetry into the database.

Topics:
    sensors/<deviceId>/data     JSON reading, same fields as POST /api/iot/sensor-data
    devices/<deviceId>/status   JSON {"status": ...} (online when absent) or a plain status string
"""
import json
import logging
import threading
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from smartdrishti.db import db
from smartdrishti.models.IotDevice import DEVICE_STATUSES
from smartdrishti.services.device_service import DeviceService
from smartdrishti.services.ingest_service import IngestService
from smartdrishti.utils.errors import ApiError

logger = logging.getLogger(__name__)

SENSOR_TOPIC = "sensors/+/data"
STATUS_TOPIC = "devices/+/status"


def broker_address(url: str, default_port: int = 1883):
    """Accepts a bare host or an mqtt://host:port URL."""
    if "://" not in url:
        return url, default_port
    parsed = urlparse(url)
    return parsed.hostname, parsed.port or default_port


class MqttBridge:

    def __init__(self, app, broadcaster=None):
        self.app = app
        self.ingest = IngestService(broadcaster)
        self.client_id = f"{app.config.get('MQTT_CLIENT_PREFIX', 'smartdrishti-backend-')}{uuid.uuid4().hex[:8]}"
        self.is_connected = False
        self.client: Optional[mqtt.Client] = None
        self._thread: Optional[threading.Thread] = None
        # paho delivers on one network thread; the lock also covers direct calls
        self._handle_lock = threading.Lock()

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self):
        if self.client is not None:
            return self.client

        host, port = broker_address(self.app.config["MQTT_BROKER_URL"], self.app.config["MQTT_BROKER_PORT"])
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id,
                             protocol=mqtt.MQTTv311)
        if self.app.config.get("MQTT_USERNAME"):
            client.username_pw_set(self.app.config["MQTT_USERNAME"], self.app.config.get("MQTT_PASSWORD"))
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        logger.info("Connecting to MQTT broker %s:%s as %s", host, port, self.client_id)
        client.connect_async(host, port, keepalive=60)
        self.client = client
        self._thread = threading.Thread(
            target=lambda: client.loop_forever(retry_first_connection=True),
            name="mqtt-bridge",
            daemon=True,
        )
        self._thread.start()
        return client

    def stop(self):
        """Disconnects and waits for the network thread to finish."""
        if self.client is not None:
            logger.info("Disconnecting MQTT client %s", self.client_id)
            self.client.disconnect()
            self.client = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        self.is_connected = False

    def status(self) -> Dict[str, Any]:
        return {"isConnected": self.is_connected, "clientId": self.client_id}

    def publish(self, topic: str, payload: Any) -> bool:
        if self.client is None or not self.is_connected:
            logger.warning("MQTT publish to %s skipped: not connected", topic)
            return False
        info = self.client.publish(topic, json.dumps(payload), qos=1)
        return info.rc == mqtt.MQTT_ERR_SUCCESS

    # -------------------------
    # paho callbacks
    # -------------------------
    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error("MQTT connection refused: %s", reason_code)
            self.is_connected = False
            return
        self.is_connected = True
        logger.info("MQTT connected")
        client.subscribe([(SENSOR_TOPIC, 1), (STATUS_TOPIC, 1)])
        logger.info("Subscribed to %s and %s", SENSOR_TOPIC, STATUS_TOPIC)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self.is_connected = False
        logger.warning("MQTT disconnected: %s", reason_code)

    def _on_message(self, client, userdata, msg):
        try:
            self.handle_message(msg.topic, msg.payload)
        except Exception:
            logger.exception("Error processing MQTT message on %s", msg.topic)

    # -------------------------
    # Message handling
    # -------------------------
    def handle_message(self, topic: str, payload: bytes) -> bool:
        """Processes one message inside an app context. Returns False when it was dropped."""
        parts = topic.split("/")
        if len(parts) != 3 or not parts[1]:
            logger.warning("Ignoring MQTT message on unexpected topic %s", topic)
            return False
        kind, device_id, channel = parts

        text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else str(payload)
        try:
            data = json.loads(text)
        except ValueError:
            data = text.strip()

        with self._handle_lock, self.app.app_context():
            try:
                if kind == "sensors" and channel == "data":
                    return self._handle_sensor_data(device_id, data)
                if kind == "devices" and channel == "status":
                    return self._handle_status(device_id, data)
            except ApiError as exc:
                logger.warning("Dropped MQTT message on %s: %s", topic, exc.message)
                db.session.rollback()
                return False
            finally:
                db.session.remove()

        logger.warning("Ignoring MQTT message on unhandled topic %s", topic)
        return False

    def _handle_sensor_data(self, device_id: str, data) -> bool:
        if not isinstance(data, dict):
            logger.warning("Sensor payload for %s is not a JSON object", device_id)
            return False
        self.ingest.ingest(device_id, data, source="mqtt")
        logger.info("Sensor data saved for device %s", device_id)
        return True

    def _handle_status(self, device_id: str, data) -> bool:
        # a JSON heartbeat without a status field means the device is up
        status = (data.get("status") or "online") if isinstance(data, dict) else data
        if status not in DEVICE_STATUSES:
            logger.warning("Unknown status payload for %s: %r", device_id, data)
            return False
        DeviceService.set_status(device_id, status)
        logger.info("Device %s is now %s", device_id, status)
        return True
