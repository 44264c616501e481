import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from smartdrishti.repositories.sensor_repository import SensorRepository
from smartdrishti.repositories.sql_compat import query, transaction
from smartdrishti.utils.timeutils import utcnow

readings = SensorRepository()

logger = logging.getLogger(__name__)


def hour_start(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def _average(values):
    values = [v for v in values if v is not None]
    return sum(values) / len(values) if values else None


def rollup_hourly(now: Optional[datetime] = None, device_id: Optional[str] = None,
                  rebuild: bool = False) -> int:
    """
    Fills sensor_data_hourly from raw readings of completed hours.

    Each device resumes after its newest stored bucket, so repeated runs only
    read new readings. ``rebuild`` ignores stored buckets and rewrites the
    whole history. The current (still open) hour is left out. Existing
    buckets for the hours being written are replaced. Returns the number of
    buckets written.
    """
    cutoff = hour_start(now or utcnow())
    resume_after = {} if rebuild else readings.last_buckets(device_id)
    buckets = defaultdict(list)
    for device in readings.reporting_devices(device_id):
        last = resume_after.get(device)
        start = last + timedelta(hours=1) if last is not None else None
        for reading in readings.before(cutoff, device, start=start):
            buckets[(reading.device_id, hour_start(reading.timestamp))].append(reading)

    with transaction():
        for (device, start), rows in sorted(buckets.items()):
            query("DELETE FROM sensor_data_hourly WHERE device_id = ? AND hour_start = ?", [device, start])
            query(
                """INSERT INTO sensor_data_hourly
                   (device_id, hour_start, avg_temperature, avg_humidity, avg_pressure,
                    avg_light_level, motion_count, data_points)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    device,
                    start,
                    _average(r.temperature for r in rows),
                    _average(r.humidity for r in rows),
                    _average(r.pressure for r in rows),
                    _average(r.light_level for r in rows),
                    sum(1 for r in rows if r.motion_detected),
                    len(rows),
                ],
            )

    logger.info("Hourly rollup wrote %d buckets", len(buckets))
    return len(buckets)
