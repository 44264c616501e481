from typing import List, Optional, Dict, Any

from sqlalchemy.orm import selectinload

from smartdrishti.models.Project import Project
from smartdrishti.models.Step import Step
from smartdrishti.repositories.base_repository import BaseRepository
from smartdrishti.repositories.sql_compat import query

# One statement for the dashboard listing; on SQLite the JSON aggregation is
# rebuilt by sql_compat, on PostgreSQL it is rebuilt the same way for a single
# response shape.
OVERVIEW_SQL = """
    SELECT p.*,
           COALESCE(
               json_agg(json_build_object('id', s.id, 'title', s.title, 'status', s.status)
                        ORDER BY s.created_at, s.id) FILTER (WHERE s.id IS NOT NULL),
               '[]'
           ) AS steps
    FROM projects p
    LEFT JOIN steps s ON s.project_id = p.id
    GROUP BY p.id
    ORDER BY p.created_at DESC, p.id DESC
"""


class ProjectRepository(BaseRepository[Project]):

    def __init__(self):
        super().__init__(Project)

    def get_with_steps(self, project_id: int) -> Optional[Project]:
        return (
            self.db.session.query(Project)
            .options(selectinload(Project.steps).selectinload(Step.media))
            .filter(Project.id == project_id)
            .first()
        )

    def overview(self) -> List[Dict[str, Any]]:
        """Every project, newest first, with nested steps/media and progress fields."""
        return query(OVERVIEW_SQL)["rows"]

    def replace_steps(self, project: Project, steps: List[Step]):
        project.steps = steps
        self.commit()
