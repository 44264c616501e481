import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from smartdrishti.db import db
from smartdrishti.models.IotDevice import IotDevice, DEVICE_STATUSES
from smartdrishti.repositories.device_repository import DeviceRepository
from smartdrishti.utils.errors import NotFoundError, ValidationError
from smartdrishti.utils.timeutils import iso_text, utcnow

repository = DeviceRepository()

logger = logging.getLogger(__name__)

ONLINE_WINDOW = timedelta(minutes=5)
IDLE_WINDOW = timedelta(minutes=30)


def real_status(last_seen, now=None) -> str:
    """online when seen in the last 5 minutes, idle up to 30, offline otherwise."""
    if last_seen is None:
        return 'offline'
    now = now or utcnow()
    age = now - last_seen
    if age <= ONLINE_WINDOW:
        return 'online'
    if age <= IDLE_WINDOW:
        return 'idle'
    return 'offline'


def _summary(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'deviceId': row['device_id'],
        'name': row['name'],
        'type': row['type'],
        'location': row['location'],
        'status': row['status'],
        'lastSeen': row['last_seen'],
        'dataPoints': row['data_points'],
        'lastDataPoint': iso_text(row['last_data_point']),
        'createdAt': row['created_at'],
    }


class DeviceService:

    @staticmethod
    def list_devices() -> List[Dict[str, Any]]:
        return [_summary(row) for row in repository.list_with_stats()]

    @staticmethod
    def get_device(device_id: str) -> IotDevice:
        device = repository.get_by_device_id(device_id)
        if device is None:
            raise NotFoundError("Device not found")
        return device

    @staticmethod
    def register(device_id: str, name: str, type: Optional[str] = None,
                 location: Optional[str] = None) -> IotDevice:
        if repository.get_by_device_id(device_id) is not None:
            raise ValidationError("Device ID already exists")

        device = IotDevice(device_id=device_id, name=name, type=type, location=location,
                           status='online', last_seen=utcnow())
        try:
            repository.create(device)
        except IntegrityError:
            db.session.rollback()
            raise ValidationError("Device ID already exists")
        logger.info("Device registered: %s", device_id)
        return device

    @staticmethod
    def set_status(device_id: str, status: str) -> IotDevice:
        if status not in DEVICE_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(DEVICE_STATUSES)}")
        device = DeviceService.get_device(device_id)
        device.status = status
        device.last_seen = utcnow()
        repository.update(device)
        return device

    @staticmethod
    def delete(device_id: str):
        device = DeviceService.get_device(device_id)
        repository.delete(device)
        logger.info("Device deleted: %s", device_id)

    @staticmethod
    def live_status(device_id: str) -> Dict[str, Any]:
        device = DeviceService.get_device(device_id)
        return {
            'status': real_status(device.last_seen),
            'lastSeen': device.last_seen.isoformat() if device.last_seen else None,
        }
