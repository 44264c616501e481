import logging
from datetime import timedelta

from flask import Blueprint, jsonify, request, current_app

from smartdrishti.services.device_service import DeviceService
from smartdrishti.services.ingest_service import IngestService
from smartdrishti.services.maintenance_service import MaintenanceService
from smartdrishti.services.rollup_service import rollup_hourly
from smartdrishti.repositories.sensor_repository import SensorRepository
from smartdrishti.utils.decorators.decorators import role_required
from smartdrishti.utils.errors import ApiError, NotFoundError, ValidationError
from smartdrishti.utils.timeutils import utcnow
from smartdrishti.views.forms import DeviceForm, json_body

readings = SensorRepository()

logger = logging.getLogger(__name__)

iot_bp = Blueprint('iot', __name__, url_prefix='/api/iot')


@iot_bp.errorhandler(ApiError)
def handle_iot_error(error):
    return jsonify({'success': False, 'error': error.message}), error.status_code


def _positive_int_arg(name, default):
    raw = request.args.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if value <= 0:
        raise ValidationError(f"{name} must be positive")
    return value


# -------------------------
# Devices
# -------------------------
@iot_bp.route('/devices', methods=['GET'])
def list_devices():
    return jsonify({'success': True, 'devices': DeviceService.list_devices()})


@iot_bp.route('/devices/<device_id>', methods=['GET'])
def get_device(device_id):
    return jsonify({'success': True, 'device': DeviceService.get_device(device_id).to_dict()})


@iot_bp.route('/devices', methods=['POST'])
def register_device():
    form = DeviceForm.validated(json_body())
    device = DeviceService.register(
        form.deviceId.data.strip(),
        form.name.data.strip(),
        form.type.data or None,
        form.location.data or None,
    )
    return jsonify({
        'success': True,
        'message': 'Device registered successfully',
        'device': {
            'id': device.id,
            'deviceId': device.device_id,
            'name': device.name,
            'type': device.type,
            'location': device.location,
        },
    }), 201


@iot_bp.route('/devices/<device_id>/status', methods=['PUT'])
def update_device_status(device_id):
    DeviceService.set_status(device_id, json_body().get('status'))
    return jsonify({'success': True, 'message': 'Device status updated'})


@iot_bp.route('/devices/<device_id>', methods=['DELETE'])
@role_required('admin')
def delete_device(device_id):
    DeviceService.delete(device_id)
    return jsonify({'success': True, 'message': 'Device deleted successfully'})


@iot_bp.route('/devices/<device_id>/status', methods=['GET'])
def device_status(device_id):
    status = DeviceService.live_status(device_id)
    return jsonify({'success': True, **status})


@iot_bp.route('/devices/<device_id>/maintenance-risk', methods=['GET'])
def maintenance_risk(device_id):
    return jsonify({'success': True, **MaintenanceService.thermal_risk(device_id)})


@iot_bp.route('/devices/<device_id>/predict-failure', methods=['GET'])
def predict_failure(device_id):
    return jsonify(MaintenanceService.predict_failure(device_id))


# -------------------------
# Sensor data
# -------------------------
@iot_bp.route('/sensor-data', methods=['POST'])
@iot_bp.route('/sensor-data/realtime', methods=['POST'])
def receive_sensor_data():
    data = json_body()
    device_id = data.get('deviceId') or data.get('device_id')
    service = IngestService(current_app.extensions.get('live_updates'))
    reading = service.ingest(device_id, data, source='http')
    return jsonify({'success': True, 'message': 'Sensor data received successfully', 'dataId': reading.id})


@iot_bp.route('/sensor-data/latest/<device_id>', methods=['GET'])
def latest_sensor_data(device_id):
    reading = readings.latest(device_id)
    if reading is None:
        raise NotFoundError("No sensor data found for this device")
    return jsonify({'success': True, 'data': reading.to_dict()})


@iot_bp.route('/sensor-data/aggregated/<device_id>', methods=['GET'])
def aggregated_sensor_data(device_id):
    days = _positive_int_arg('days', 7)
    if request.args.get('refresh') in ('1', 'true'):
        rollup_hourly(device_id=device_id)
    rows = readings.hourly_since(device_id, utcnow() - timedelta(days=days))
    return jsonify({'success': True, 'data': [row.to_dict() for row in rows]})


@iot_bp.route('/sensor-data/<device_id>', methods=['GET'])
def sensor_data(device_id):
    hours = _positive_int_arg('hours', 24)
    limit = _positive_int_arg('limit', 100)
    rows = readings.since(device_id, utcnow() - timedelta(hours=hours), limit=limit)
    return jsonify({'success': True, 'data': [row.to_dict() for row in rows]})
