"""
Device health heuristics.

``assess_thermal_risk`` is the quick indicator shown next to every device;
``predict_failure`` is the longer composite analysis over 30 days of data.
"""
import logging
import math
from datetime import timedelta
from typing import Any, Dict, List, Sequence

from smartdrishti.repositories.sensor_repository import SensorRepository
from smartdrishti.services.device_service import DeviceService
from smartdrishti.utils.timeutils import utcnow

readings = SensorRepository()

logger = logging.getLogger(__name__)

RISK_SAMPLE_SIZE = 100
ANALYSIS_WINDOW = timedelta(days=30)
EXPECTED_INTERVAL = timedelta(minutes=5)
OFFLINE_THRESHOLD = timedelta(minutes=30)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def assess_thermal_risk(temperatures: Sequence[float]) -> Dict[str, Any]:
    """
    Risk from temperatures ordered most recent first (nulls already dropped).

    delta compares the 5 newest samples with the 15 before them; variance is
    the population variance of the whole window.
    """
    temps = list(temperatures)
    if not temps:
        return {'risk': 'low', 'variance': 0.0, 'delta': 0.0, 'samples': 0}

    mean = _mean(temps)
    variance = sum((t - mean) ** 2 for t in temps) / len(temps)

    recent, previous = temps[:5], temps[5:20]
    delta = _mean(recent) - _mean(previous) if recent and previous else 0.0

    if variance > 25 or delta > 5:
        risk = 'high'
    elif variance > 10 or delta > 2:
        risk = 'medium'
    else:
        risk = 'low'
    return {'risk': risk, 'variance': variance, 'delta': delta, 'samples': len(temps)}


# -------------------------
# Composite failure prediction
# -------------------------
def _trend(values: List[float]):
    recent = values[-10:]
    older = values[-20:-10]
    recent_avg = _mean(recent)
    older_avg = _mean(older) if older else recent_avg
    if recent_avg > older_avg:
        trend = 'increasing'
    elif recent_avg < older_avg:
        trend = 'decreasing'
    else:
        trend = 'stable'
    return recent_avg, older_avg, trend


def analyze_temperature(values: List[float]) -> Dict[str, Any]:
    if not values:
        return {'risk_factor': 0.0, 'trend': 'stable', 'recent_avg': 0.0, 'overheat_incidents': 0}

    recent_avg, older_avg, trend = _trend(values)
    overheat = sum(1 for t in values if t > 40)
    jumps = sum(1 for a, b in zip(values, values[1:]) if abs(b - a) > 5)
    volatility = jumps / (len(values) - 1) if len(values) > 1 else 0.0

    risk = 0.0
    if recent_avg > 38:
        risk += 0.4
    if recent_avg > older_avg + 2:
        risk += 0.3
    risk += overheat / len(values) * 0.2
    risk += volatility * 0.1
    return {'risk_factor': min(risk, 1.0), 'trend': trend, 'recent_avg': recent_avg,
            'overheat_incidents': overheat}


def analyze_humidity(values: List[float]) -> Dict[str, Any]:
    if not values:
        return {'risk_factor': 0.0, 'trend': 'stable', 'recent_avg': 0.0}

    recent_avg, older_avg, trend = _trend(values)
    extreme = sum(1 for h in values if h > 75 or h < 25)

    risk = 0.0
    if recent_avg > 70 or recent_avg < 30:
        risk += 0.3
    if abs(recent_avg - older_avg) > 5:
        risk += 0.2
    risk += extreme / len(values) * 0.5
    return {'risk_factor': min(risk, 1.0), 'trend': trend, 'recent_avg': recent_avg}


def analyze_consistency(timestamps: List) -> Dict[str, Any]:
    if not timestamps:
        return {'consistency_score': 0.0, 'gaps_detected': 0}

    gaps = 0
    expected_total = 0
    for previous, current in zip(timestamps, timestamps[1:]):
        expected = int((current - previous) / EXPECTED_INTERVAL)
        if expected > 1:
            gaps += expected - 1
        expected_total += expected

    score = (len(timestamps) - gaps) / expected_total if expected_total > 0 else 0.0
    return {'consistency_score': max(0.0, min(1.0, score)), 'gaps_detected': gaps}


def analyze_uptime(timestamps: List) -> Dict[str, Any]:
    if not timestamps:
        return {'interrupt_risk': 1.0, 'uptime_percentage': 0.0, 'offline_periods': 0}

    offline = sum(1 for a, b in zip(timestamps, timestamps[1:]) if b - a > OFFLINE_THRESHOLD)
    interrupt_risk = min(1.0, offline / max(1.0, len(timestamps) / 100))
    # each offline period is counted as half a day lost out of 30
    uptime = max(0.0, min(100.0, (30 - offline * 0.5) / 30 * 100))
    return {'interrupt_risk': interrupt_risk, 'uptime_percentage': uptime, 'offline_periods': offline}


def failure_window(risk_percentage: int) -> str:
    if risk_percentage >= 80:
        return "1-7 days"
    if risk_percentage >= 60:
        return "1-4 weeks"
    if risk_percentage >= 40:
        return "1-3 months"
    if risk_percentage >= 20:
        return "3-6 months"
    return "No immediate risk"


def recommendation(risk_percentage, temperature, humidity, consistency, uptime) -> str:
    if risk_percentage >= 80:
        notes = ["IMMEDIATE ACTION REQUIRED - Critical failure risk detected",
                 "Schedule emergency maintenance within 24-48 hours"]
    elif risk_percentage >= 60:
        notes = ["High priority maintenance recommended within 1-2 weeks"]
    elif risk_percentage >= 40:
        notes = ["Plan preventive maintenance within 1 month"]
    elif risk_percentage >= 20:
        notes = ["Consider preventive maintenance within 3 months"]
    else:
        notes = ["Device operating normally - routine monitoring recommended"]

    if temperature['risk_factor'] > 0.5:
        notes.append(f"Temperature concerns detected: Current avg {temperature['recent_avg']:.1f}°C")
        if temperature['overheat_incidents'] > 0:
            notes.append(f"{temperature['overheat_incidents']} overheating incidents recorded")
    if humidity['risk_factor'] > 0.5:
        notes.append(f"Humidity issues detected: Current avg {humidity['recent_avg']:.1f}%")
    if consistency['gaps_detected'] > 0:
        notes.append(f"{consistency['gaps_detected']} data transmission gaps detected")
    if uptime['offline_periods'] > 0:
        notes.append(f"{uptime['offline_periods']} offline periods detected affecting "
                     f"{uptime['uptime_percentage']:.1f}% uptime")
    return ". ".join(notes) + "."


def analyze_device_health(rows) -> Dict[str, Any]:
    """Composite score over rows ordered oldest first."""
    temperature = analyze_temperature([r.temperature for r in rows if r.temperature is not None])
    humidity = analyze_humidity([r.humidity for r in rows if r.humidity is not None])
    timestamps = [r.timestamp for r in rows]
    consistency = analyze_consistency(timestamps)
    uptime = analyze_uptime(timestamps)

    score = (temperature['risk_factor'] * 0.3
             + humidity['risk_factor'] * 0.25
             + (1 - consistency['consistency_score']) * 0.2
             + uptime['interrupt_risk'] * 0.25)
    percentage = int(math.floor(score * 100 + 0.5))

    if len(rows) < 50:
        confidence = "LOW"
    elif len(rows) < 200:
        confidence = "MEDIUM"
    else:
        confidence = "HIGH"

    return {
        'failure_risk_percentage': percentage,
        'predicted_failure_window': failure_window(percentage),
        'confidence_level': confidence,
        'maintenance_recommendation': recommendation(percentage, temperature, humidity, consistency, uptime),
    }


class MaintenanceService:

    @staticmethod
    def thermal_risk(device_id: str) -> Dict[str, Any]:
        DeviceService.get_device(device_id)
        rows = readings.recent(device_id, RISK_SAMPLE_SIZE)
        result = assess_thermal_risk([r.temperature for r in rows if r.temperature is not None])
        result['deviceId'] = device_id
        return result

    @staticmethod
    def predict_failure(device_id: str) -> Dict[str, Any]:
        DeviceService.get_device(device_id)
        rows = readings.since(device_id, utcnow() - ANALYSIS_WINDOW, newest_first=False)
        if not rows:
            return {
                'failure_risk_percentage': 0,
                'predicted_failure_window': "Insufficient data",
                'confidence_level': "LOW",
                'maintenance_recommendation': "No historical data available for analysis",
            }
        analysis = analyze_device_health(rows)
        logger.info("Failure prediction for %s: %s%%", device_id, analysis['failure_risk_percentage'])
        return analysis
