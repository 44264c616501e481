from flask import Blueprint, jsonify, request, current_app

from smartdrishti.services.media_service import MediaService
from smartdrishti.services.step_service import StepService
from smartdrishti.views.forms import json_body

steps_bp = Blueprint('steps', __name__, url_prefix='/api')


@steps_bp.route('/steps/<int:step_id>', methods=['PUT'])
def update_step(step_id):
    step = StepService.update(step_id, json_body())
    return jsonify({'message': 'Step updated successfully', 'step': step})


@steps_bp.route('/steps/<int:step_id>', methods=['DELETE'])
def delete_step(step_id):
    StepService.delete(step_id)
    return jsonify({'message': 'Step deleted successfully'})


@steps_bp.route('/steps/<int:step_id>/media', methods=['POST'])
def upload_media(step_id):
    media = MediaService.upload(
        step_id,
        request.files.getlist('media'),
        current_app.config['UPLOAD_FOLDER'],
        current_app.config['MAX_MEDIA_FILES'],
    )
    return jsonify({'message': 'Media uploaded successfully', 'media': media}), 201


@steps_bp.route('/media/<int:media_id>', methods=['DELETE'])
def delete_media(media_id):
    MediaService.delete(media_id)
    return jsonify({'message': 'Media deleted successfully'})
