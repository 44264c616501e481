from typing import List

from smartdrishti.models.Step import Step
from smartdrishti.repositories.base_repository import BaseRepository


class StepRepository(BaseRepository[Step]):

    def __init__(self):
        super().__init__(Step)

    def for_project(self, project_id: int) -> List[Step]:
        return (
            self.db.session.query(Step)
            .filter(Step.project_id == project_id)
            .order_by(Step.created_at.asc(), Step.id.asc())
            .all()
        )
