from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartdrishti.db import db

DEVICE_STATUSES = ('online', 'offline', 'idle')


class IotDevice(db.Model):
    __tablename__ = 'iot_devices'

    id = Column(Integer, primary_key=True)
    device_id = Column(String(100), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    type = Column(String(100))
    location = Column(String(200))
    status = Column(String(20), default='offline', server_default='offline')
    last_seen = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    # relationships
    readings = relationship("SensorData", back_populates="device",
                            cascade="all, delete-orphan", passive_deletes=True)
    hourly = relationship("SensorDataHourly", cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'name': self.name,
            'type': self.type,
            'location': self.location,
            'status': self.status,
            'last_seen': self.last_seen.isoformat() if self.last_seen else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
