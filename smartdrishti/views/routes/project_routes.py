from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, current_user

from smartdrishti.services.project_service import ProjectService
from smartdrishti.services.step_service import StepService
from smartdrishti.views.forms import ProjectForm, json_body

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


@projects_bp.route('', methods=['GET'])
@projects_bp.route('/', methods=['GET'])
def list_projects():
    include_steps = request.args.get('include') == 'steps'
    return jsonify(ProjectService.list_projects(include_steps=include_steps))


@projects_bp.route('', methods=['POST'])
@projects_bp.route('/', methods=['POST'])
@jwt_required()
def create_project():
    data = json_body()
    form = ProjectForm.validated(data)
    project = ProjectService.create_project(current_user, {
        'title': form.title.data.strip(),
        'difficulty': form.difficulty.data,
        'estimated_time': form.estimated_time.data or None,
        'description': form.description.data,
        'steps': data.get('steps'),
    })
    return jsonify({'message': 'Project created successfully', 'project': project}), 201


@projects_bp.route('/<int:project_id>', methods=['GET'])
def get_project(project_id):
    return jsonify(ProjectService.get_project(project_id))


@projects_bp.route('/<int:project_id>', methods=['PUT'])
@jwt_required()
def update_project(project_id):
    project = ProjectService.update_project(project_id, current_user, json_body())
    return jsonify({'message': 'Project updated successfully', 'project': project})


@projects_bp.route('/<int:project_id>', methods=['DELETE'])
@jwt_required()
def delete_project(project_id):
    ProjectService.delete_project(project_id, current_user)
    return jsonify({'message': 'Project deleted successfully'})


# -------------------------
# Steps of a project
# -------------------------
@projects_bp.route('/<int:project_id>/steps', methods=['GET'])
def list_steps(project_id):
    return jsonify(StepService.list_for_project(project_id))


@projects_bp.route('/<int:project_id>/steps', methods=['POST'])
def create_step(project_id):
    step = StepService.create(project_id, json_body())
    return jsonify({'message': 'Step created successfully', 'step': step}), 201
