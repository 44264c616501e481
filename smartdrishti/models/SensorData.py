from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, Index, String, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from smartdrishti.db import db
from smartdrishti.utils.timeutils import utcnow


class SensorData(db.Model):
    __tablename__ = 'sensor_data'

    id = Column(Integer, primary_key=True)
    device_id = Column(String(100), ForeignKey('iot_devices.device_id', ondelete='CASCADE'), nullable=False)
    temperature = Column(Float)
    humidity = Column(Float)
    pressure = Column(Float)
    light_level = Column(Float)
    motion_detected = Column(Boolean, default=False, server_default=false())
    timestamp = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    device = relationship("IotDevice", back_populates="readings")

    # time-series lookups are always per device, newest first
    __table_args__ = (
        Index('idx_sensor_data_device_timestamp', 'device_id', 'timestamp'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'temperature': self.temperature,
            'humidity': self.humidity,
            'pressure': self.pressure,
            'light_level': self.light_level,
            'motion_detected': bool(self.motion_detected),
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
