from flask import Blueprint, jsonify, current_app, send_from_directory

from smartdrishti.utils.timeutils import utcnow

main = Blueprint('main', __name__)


@main.route('/api/health', methods=['GET'])
def health():
    bridge = current_app.extensions.get('mqtt_bridge')
    mqtt_status = bridge.status() if bridge is not None else {'isConnected': False, 'clientId': None}
    return jsonify({
        'status': 'OK',
        'message': 'SmartDrishti Backend is running',
        'mqttStatus': mqtt_status,
        'timestamp': utcnow().isoformat() + 'Z',
    })


@main.route('/api', methods=['GET'])
def api_info():
    return jsonify({
        'name': 'SmartDrishti API',
        'version': '1.0.0',
        'endpoints': {
            'auth': '/api/auth',
            'projects': '/api/projects',
            'steps': '/api/steps',
            'media': '/api/media',
            'iot': '/api/iot',
            'health': '/api/health',
            'websocket': '/ws',
        },
    })


@main.route('/uploads/<path:filename>', methods=['GET'])
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
