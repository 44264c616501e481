from typing import Optional

from sqlalchemy import or_

from smartdrishti.models.Users import User
from smartdrishti.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):

    def __init__(self):
        super().__init__(User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.session.query(User).filter(User.email == email).first()

    def exists_with(self, email: str, username: str, exclude_id: Optional[int] = None) -> bool:
        """True when another account already uses the email or the username."""
        query = self.db.session.query(User.id).filter(
            or_(User.email == email, User.username == username)
        )
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None
