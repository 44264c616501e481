from typing import List

from smartdrishti.models.StepMedia import StepMedia
from smartdrishti.repositories.base_repository import BaseRepository


class MediaRepository(BaseRepository[StepMedia]):

    def __init__(self):
        super().__init__(StepMedia)

    def create_many(self, items: List[StepMedia]) -> List[StepMedia]:
        self.db.session.add_all(items)
        self.commit()
        return items
