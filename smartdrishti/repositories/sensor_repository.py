from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func

from smartdrishti.models.SensorData import SensorData
from smartdrishti.models.SensorDataHourly import SensorDataHourly
from smartdrishti.repositories.base_repository import BaseRepository


class SensorRepository(BaseRepository[SensorData]):

    def __init__(self):
        super().__init__(SensorData)

    def latest(self, device_id: str) -> Optional[SensorData]:
        return (
            self.db.session.query(SensorData)
            .filter(SensorData.device_id == device_id)
            .order_by(SensorData.timestamp.desc(), SensorData.id.desc())
            .first()
        )

    def since(self, device_id: str, start: datetime, limit: Optional[int] = None,
              newest_first: bool = True) -> List[SensorData]:
        order = SensorData.timestamp.desc() if newest_first else SensorData.timestamp.asc()
        query = (
            self.db.session.query(SensorData)
            .filter(SensorData.device_id == device_id, SensorData.timestamp >= start)
            .order_by(order, SensorData.id.desc() if newest_first else SensorData.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def recent(self, device_id: str, limit: int) -> List[SensorData]:
        return (
            self.db.session.query(SensorData)
            .filter(SensorData.device_id == device_id)
            .order_by(SensorData.timestamp.desc(), SensorData.id.desc())
            .limit(limit)
            .all()
        )

    def before(self, cutoff: datetime, device_id: Optional[str] = None,
               start: Optional[datetime] = None) -> List[SensorData]:
        query = self.db.session.query(SensorData).filter(SensorData.timestamp < cutoff)
        if device_id is not None:
            query = query.filter(SensorData.device_id == device_id)
        if start is not None:
            query = query.filter(SensorData.timestamp >= start)
        return query.order_by(SensorData.device_id, SensorData.timestamp).all()

    def reporting_devices(self, device_id: Optional[str] = None) -> List[str]:
        query = self.db.session.query(SensorData.device_id).distinct()
        if device_id is not None:
            query = query.filter(SensorData.device_id == device_id)
        return sorted(row[0] for row in query.all())

    def last_buckets(self, device_id: Optional[str] = None) -> Dict[str, datetime]:
        """Newest stored hour per device."""
        query = self.db.session.query(
            SensorDataHourly.device_id, func.max(SensorDataHourly.hour_start)
        ).group_by(SensorDataHourly.device_id)
        if device_id is not None:
            query = query.filter(SensorDataHourly.device_id == device_id)
        return {device: last for device, last in query.all() if last is not None}

    def hourly_since(self, device_id: str, start: datetime) -> List[SensorDataHourly]:
        return (
            self.db.session.query(SensorDataHourly)
            .filter(SensorDataHourly.device_id == device_id, SensorDataHourly.hour_start >= start)
            .order_by(SensorDataHourly.hour_start.desc())
            .all()
        )
