from typing import List, Optional, Dict, Any

from smartdrishti.models.IotDevice import IotDevice
from smartdrishti.repositories.base_repository import BaseRepository
from smartdrishti.repositories.sql_compat import query

DEVICES_WITH_STATS_SQL = """
    SELECT d.*,
           COUNT(sd.id) AS data_points,
           MAX(sd.timestamp) AS last_data_point
    FROM iot_devices d
    LEFT JOIN sensor_data sd ON d.device_id = sd.device_id
    GROUP BY d.id
    ORDER BY d.last_seen DESC
"""


class DeviceRepository(BaseRepository[IotDevice]):

    def __init__(self):
        super().__init__(IotDevice)

    def get_by_device_id(self, device_id: str) -> Optional[IotDevice]:
        return self.db.session.query(IotDevice).filter(IotDevice.device_id == device_id).first()

    def list_with_stats(self) -> List[Dict[str, Any]]:
        """Devices with reading count and newest reading time, most recently seen first."""
        return query(DEVICES_WITH_STATS_SQL)["rows"]
