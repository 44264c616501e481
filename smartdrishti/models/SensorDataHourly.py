from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, String, UniqueConstraint

from smartdrishti.db import db


class SensorDataHourly(db.Model):
    __tablename__ = 'sensor_data_hourly'

    id = Column(Integer, primary_key=True)
    device_id = Column(String(100), ForeignKey('iot_devices.device_id', ondelete='CASCADE'), nullable=False)
    hour_start = Column(DateTime, nullable=False)
    avg_temperature = Column(Float)
    avg_humidity = Column(Float)
    avg_pressure = Column(Float)
    avg_light_level = Column(Float)
    motion_count = Column(Integer, default=0, server_default='0')
    data_points = Column(Integer, default=0, server_default='0')

    __table_args__ = (
        UniqueConstraint('device_id', 'hour_start', name='uq_sensor_data_hourly_device_hour'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'hour_start': self.hour_start.isoformat() if self.hour_start else None,
            'avg_temperature': self.avg_temperature,
            'avg_humidity': self.avg_humidity,
            'avg_pressure': self.avg_pressure,
            'avg_light_level': self.avg_light_level,
            'motion_count': self.motion_count,
            'data_points': self.data_points,
        }
