import logging
from typing import Any, Dict, List, Optional

from smartdrishti.models.Project import Project, DIFFICULTIES
from smartdrishti.models.Users import User
from smartdrishti.repositories.project_repository import ProjectRepository
from smartdrishti.repositories.sql_compat import transaction
from smartdrishti.repositories.step_repository import StepRepository
from smartdrishti.services.progress import progress_fields
from smartdrishti.services.step_service import build_step
from smartdrishti.utils.errors import ForbiddenError, NotFoundError, ValidationError

repository = ProjectRepository()
steps_repository = StepRepository()

logger = logging.getLogger(__name__)

# Scaffold for a new IoT project created without explicit steps
DEFAULT_STEPS = [
    {'title': 'Project Setup', 'description': 'Install Arduino IDE and ESP32 board support'},
    {'title': 'Hardware Connection', 'description': 'Connect DHT22 sensor to ESP32 using breadboard'},
    {'title': 'Library Installation', 'description': 'Install DHT sensor library and WiFi manager'},
    {'title': 'Basic Code', 'description': 'Write code to read temperature and humidity data'},
    {'title': 'WiFi Connection', 'description': 'Configure WiFi credentials and connect to network'},
    {'title': 'Data Logging', 'description': 'Send sensor data to cloud service (ThingSpeak)'},
    {'title': 'Dashboard Creation', 'description': 'Create web dashboard to visualize data'},
    {'title': 'Testing & Calibration', 'description': 'Test the complete system and calibrate readings'},
]


def _check_difficulty(difficulty: Optional[str]):
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValidationError(f"Invalid difficulty. Must be one of: {', '.join(DIFFICULTIES)}")


PROJECT_TEXT_FIELDS = ('title', 'difficulty', 'estimated_time', 'description')
REQUIRED_TEXT_FIELDS = ('title', 'difficulty', 'description')


def project_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Partial-update values; absent keys map to None and keep the stored value."""
    fields = {name: data.get(name) for name in PROJECT_TEXT_FIELDS}
    for name, value in fields.items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")
        if name in REQUIRED_TEXT_FIELDS and not value.strip():
            raise ValidationError(f"{name.capitalize()} is required")
    _check_difficulty(fields['difficulty'])
    return fields


def _build_steps(items: Any):
    if not isinstance(items, list):
        raise ValidationError("steps must be a list")
    built = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError("each step must be an object")
        built.append(build_step(item, position))
    return built


def can_modify(project: Project, user: User) -> bool:
    """Demo projects are shared; every other project belongs to its owner alone."""
    return project.is_demo or (project.user_id is not None and project.user_id == user.id)


class ProjectService:

    @staticmethod
    def serialize(project: Project) -> Dict[str, Any]:
        steps = steps_repository.for_project(project.id)
        data = project.to_dict()
        data['steps'] = [step.to_dict(include_media=True) for step in steps]
        data.update(progress_fields(step.status for step in steps))
        return data

    @staticmethod
    def list_projects(include_steps: bool = False) -> List[Dict[str, Any]]:
        rows = repository.overview()
        if not include_steps:
            for row in rows:
                row.pop('steps', None)
        return rows

    @staticmethod
    def get_project(project_id: int) -> Dict[str, Any]:
        project = repository.get_with_steps(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return ProjectService.serialize(project)

    @staticmethod
    def create_project(user: User, data: Dict[str, Any]) -> Dict[str, Any]:
        _check_difficulty(data.get('difficulty'))
        step_data = data.get('steps')
        if not step_data:
            step_data = DEFAULT_STEPS
        new_steps = _build_steps(step_data)

        with transaction():
            project = Project(
                user_id=user.id,
                title=data['title'],
                difficulty=data['difficulty'],
                estimated_time=data.get('estimated_time'),
                description=data['description'],
                is_demo=False,
            )
            project.steps = new_steps
            repository.create(project)

        logger.info("Project %s created by user %s with %d steps", project.id, user.id, len(new_steps))
        return ProjectService.serialize(project)

    @staticmethod
    def _get_modifiable(project_id: int, user: User, action: str) -> Project:
        project = repository.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if not can_modify(project, user):
            raise ForbiddenError(f"Access denied: You can only {action} your own projects")
        return project

    @staticmethod
    def update_project(project_id: int, user: User, data: Dict[str, Any]) -> Dict[str, Any]:
        project = ProjectService._get_modifiable(project_id, user, "update")
        fields = project_fields(data)
        new_steps = _build_steps(data['steps']) if data.get('steps') is not None else None

        with transaction():
            repository.update_fields(project, fields)
            if new_steps is not None:
                repository.replace_steps(project, new_steps)

        return ProjectService.serialize(project)

    @staticmethod
    def delete_project(project_id: int, user: User):
        project = ProjectService._get_modifiable(project_id, user, "delete")
        repository.delete(project)
        logger.info("Project %s deleted by user %s", project_id, user.id)
