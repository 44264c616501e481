from typing import TypeVar, Generic, Optional

from smartdrishti.db import db
from smartdrishti.repositories.sql_compat import commit_unless_in_transaction

T = TypeVar('T')


class BaseRepository(Generic[T]):

    def __init__(self, model_class):
        self.model_class = model_class
        self.db = db

    def commit(self):
        """Commits, or only flushes when a surrounding transaction() owns the commit."""
        commit_unless_in_transaction()

    def create(self, obj: T) -> T:
        self.db.session.add(obj)
        self.commit()
        return obj

    def get_by_id(self, id: int) -> Optional[T]:
        return self.db.session.get(self.model_class, id)

    def update(self, obj: T) -> T:
        self.commit()
        return obj

    def update_fields(self, obj: T, fields: dict) -> T:
        """Sets every non-None value in ``fields``; None keeps the stored value."""
        for key, value in fields.items():
            if value is not None and hasattr(obj, key):
                setattr(obj, key, value)
        return self.update(obj)

    def delete(self, obj: T):
        self.db.session.delete(obj)
        self.commit()

    def delete_by_id(self, id: int) -> bool:
        obj = self.get_by_id(id)
        if obj:
            self.delete(obj)
            return True
        return False
