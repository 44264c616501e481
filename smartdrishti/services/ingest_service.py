"""
Single write path for sensor readings, shared by the HTTP endpoint and the
MQTT bridge.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from smartdrishti.models.IotDevice import IotDevice
from smartdrishti.models.SensorData import SensorData
from smartdrishti.repositories.device_repository import DeviceRepository
from smartdrishti.repositories.sensor_repository import SensorRepository
from smartdrishti.repositories.sql_compat import transaction
from smartdrishti.utils.errors import ValidationError
from smartdrishti.utils.timeutils import utcnow

devices = DeviceRepository()
readings = SensorRepository()

logger = logging.getLogger(__name__)

# how an unknown device is registered, per ingestion channel
AUTO_REGISTRATION = {
    'http': ('auto-registered', 'Device-{}'),
    'mqtt': ('ESP32', 'ESP32-{}'),
}

_FIELDS = (
    ('temperature', ('temperature',)),
    ('humidity', ('humidity',)),
    ('pressure', ('pressure',)),
    ('light_level', ('lightLevel', 'light_level')),
)


def _first_present(payload: Dict[str, Any], keys):
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _as_float(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def parse_reading(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Column values from a camelCase or snake_case payload. Zero is a reading, not a gap."""
    values = {column: _as_float(column, _first_present(payload, keys)) for column, keys in _FIELDS}
    values['motion_detected'] = _as_bool(_first_present(payload, ('motionDetected', 'motion_detected')))
    return values


class IngestService:

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster

    def ingest(self, device_id: str, payload: Dict[str, Any], source: str = 'http') -> SensorData:
        if not device_id:
            raise ValidationError("Device ID is required")
        device_id = str(device_id)
        values = parse_reading(payload)

        try:
            reading = self._write(device_id, values, source)
        except IntegrityError:
            # the other channel registered the same new device first
            devices.db.session.rollback()
            logger.info("Device %s was registered concurrently, retrying the write", device_id)
            reading = self._write(device_id, values, source)

        self._broadcast(device_id, reading)
        return reading

    def _write(self, device_id: str, values: Dict[str, Any], source: str) -> SensorData:
        now = utcnow()
        with transaction():
            device = devices.get_by_device_id(device_id)
            if device is None:
                device_type, name = AUTO_REGISTRATION.get(source, AUTO_REGISTRATION['http'])
                device = IotDevice(device_id=device_id, name=name.format(device_id), type=device_type)
                devices.db.session.add(device)
                logger.info("Auto-registered device %s via %s", device_id, source)
            device.status = 'online'
            device.last_seen = now

            reading = SensorData(device_id=device_id, timestamp=now, **values)
            readings.create(reading)
        return reading

    def _broadcast(self, device_id: str, reading: SensorData):
        if self.broadcaster is None:
            return
        event = {
            'deviceId': device_id,
            'temperature': reading.temperature,
            'humidity': reading.humidity,
            'pressure': reading.pressure,
            'lightLevel': reading.light_level,
            'motionDetected': bool(reading.motion_detected),
            'timestamp': reading.timestamp.isoformat(),
        }
        try:
            self.broadcaster.sensor_data_update(device_id, event)
            self.broadcaster.all_devices_update(event)
        except Exception:
            # a failed push never fails the write
            logger.exception("Live update broadcast failed for device %s", device_id)
