import json
import logging
from typing import Any, Dict, List, Optional

from smartdrishti.models.Step import Step, STEP_STATUSES, STATUS_ALIASES
from smartdrishti.repositories.project_repository import ProjectRepository
from smartdrishti.repositories.step_repository import StepRepository
from smartdrishti.utils.errors import NotFoundError, ValidationError

repository = StepRepository()
projects = ProjectRepository()

logger = logging.getLogger(__name__)

TEXT_FIELDS = ('title', 'description', 'connections', 'working', 'instructions', 'code', 'conclusion')
INT_FIELDS = ('order_number', 'step_number')


def normalize_status(value: Optional[str]) -> Optional[str]:
    """Maps legacy names onto the stored statuses; None stays None."""
    if value is None:
        return None
    status = STATUS_ALIASES.get(value, value)
    if status not in STEP_STATUSES:
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {', '.join(STEP_STATUSES)}")
    return status


def normalize_components(value: Any) -> Optional[List[str]]:
    """
    Components are stored as a JSON list of strings.

    A JSON-encoded list is decoded first (older clients send the array as a
    string). Anything that is not a list of strings is rejected.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError("components must be a list of strings")
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError("components must be a list of strings")
    return value


def _int_or_none(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def step_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validated column values from a request body; absent keys map to None."""
    fields = {name: data.get(name) for name in TEXT_FIELDS}
    for name in TEXT_FIELDS:
        if fields[name] is not None and not isinstance(fields[name], str):
            raise ValidationError(f"{name} must be a string")
    if fields['title'] is not None and not fields['title'].strip():
        raise ValidationError("Title is required")
    for name in INT_FIELDS:
        fields[name] = _int_or_none(name, data.get(name))
    fields['status'] = normalize_status(data.get('status'))
    fields['components'] = normalize_components(data.get('components'))
    detailed = data.get('detailed_content')
    if detailed is not None and not isinstance(detailed, (dict, list)):
        raise ValidationError("detailed_content must be a JSON object")
    fields['detailed_content'] = detailed
    return fields


def build_step(data: Dict[str, Any], position: Optional[int] = None) -> Step:
    fields = step_fields(data)
    if not fields['title']:
        raise ValidationError("Title is required")
    if position is not None:
        fields['order_number'] = fields['order_number'] or position
        fields['step_number'] = fields['step_number'] or position
    fields['status'] = fields['status'] or 'not_started'
    return Step(**fields)


class StepService:

    @staticmethod
    def list_for_project(project_id: int) -> List[Dict[str, Any]]:
        return [step.to_dict(include_media=True) for step in repository.for_project(project_id)]

    @staticmethod
    def create(project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        if projects.get_by_id(project_id) is None:
            raise NotFoundError("Project not found")
        step = build_step(data)
        step.project_id = project_id
        repository.create(step)
        logger.info("Step %s created for project %s", step.id, project_id)
        return step.to_dict(include_media=True)

    @staticmethod
    def update(step_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        step = repository.get_by_id(step_id)
        if step is None:
            raise NotFoundError("Step not found")
        repository.update_fields(step, step_fields(data))
        return step.to_dict(include_media=True)

    @staticmethod
    def delete(step_id: int):
        if not repository.delete_by_id(step_id):
            raise NotFoundError("Step not found")
