import json
import logging
import os
from typing import Any, Dict, List, Optional

from smartdrishti.models.Users import User, UserRole
from smartdrishti.repositories.sql_compat import query, transaction
from smartdrishti.repositories.user_repository import UserRepository

users = UserRepository()

logger = logging.getLogger(__name__)

SEED_FILE = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'seed', 'demo_projects.json')

DEMO_USER = {
    'username': 'Demo User',
    'email': 'demo@smartdrishti.com',
    'password': 'demopassword123',
}


def load_demo_projects(path: str = SEED_FILE) -> List[Dict[str, Any]]:
    with open(path, 'r', encoding='utf-8') as fh:
        return json.load(fh)


def ensure_demo_user() -> User:
    user = users.get_by_email(DEMO_USER['email'])
    if user is not None:
        return user
    user = User(username=DEMO_USER['username'], email=DEMO_USER['email'], role=UserRole.USER)
    user.set_password(DEMO_USER['password'])
    users.create(user)
    logger.info("Created demo user %s", user.email)
    return user


def seed_demo_projects(projects: Optional[List[Dict[str, Any]]] = None) -> int:
    """Replaces every demo project with the bundled set. Returns how many were created."""
    projects = load_demo_projects() if projects is None else projects

    with transaction():
        query("DELETE FROM projects WHERE is_demo = ?", [True])
        for project in projects:
            created = query(
                """INSERT INTO projects (title, difficulty, estimated_time, description, is_demo)
                   VALUES (?, ?, ?, ?, ?) RETURNING *""",
                [project['title'], project['difficulty'], project.get('estimated_time'),
                 project.get('description'), True],
            )["rows"][0]

            for position, step in enumerate(project.get('steps') or [], start=1):
                components = step.get('components')
                query(
                    """INSERT INTO steps (project_id, title, description, components, connections,
                                          working, instructions, code, conclusion, order_number,
                                          step_number, status)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    [
                        created['id'],
                        step['title'],
                        step.get('description'),
                        json.dumps(components) if components is not None else None,
                        step.get('connections'),
                        step.get('working'),
                        step.get('instructions'),
                        step.get('code'),
                        step.get('conclusion'),
                        step.get('order_number') or position,
                        step.get('step_number') or step.get('order_number') or position,
                        'not_started',
                    ],
                )
            logger.info("Seeded demo project %s with %d steps", created['title'], len(project.get('steps') or []))

    return len(projects)
