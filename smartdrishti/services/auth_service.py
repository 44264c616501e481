import logging
from typing import Dict, Any, Optional, Tuple

from flask_jwt_extended import create_access_token
from sqlalchemy.exc import IntegrityError

from smartdrishti.db import db
from smartdrishti.models.Users import User, UserRole
from smartdrishti.repositories.user_repository import UserRepository
from smartdrishti.utils.errors import AuthError, ConflictError, NotFoundError

repository = UserRepository()

logger = logging.getLogger(__name__)


class AuthService:

    @staticmethod
    def issue_token(user: User) -> str:
        """Access token for ``user``; expiry comes from JWT_ACCESS_TOKEN_EXPIRES."""
        return create_access_token(
            identity=str(user.id),
            additional_claims={
                "userId": user.id,
                "username": user.username,
                "email": user.email,
                "role": user.role.value,
            },
        )

    @staticmethod
    def register(username: str, email: str, password: str, role: str = None,
                 granted_by: Optional[User] = None) -> Tuple[User, str]:
        """
        Creates an account. The admin role is only granted when ``granted_by``
        is an admin; anyone else asking for it gets a plain user account.
        """
        if repository.exists_with(email, username):
            raise ConflictError("User with this email or username already exists")

        user_role = UserRole.parse(role)
        if user_role is UserRole.ADMIN and not (granted_by is not None and granted_by.is_admin):
            logger.warning("Admin role requested for %s without an admin session, registering as user", username)
            user_role = UserRole.USER

        user = User(username=username, email=email, role=user_role)
        user.set_password(password)
        try:
            repository.create(user)
        except IntegrityError:
            # lost a race with a concurrent registration
            db.session.rollback()
            raise ConflictError("User with this email or username already exists")

        logger.info("User registered: %s", user.username)
        return user, AuthService.issue_token(user)

    @staticmethod
    def login(email: str, password: str) -> Tuple[User, str]:
        user = repository.get_by_email(email)
        if user is None or not user.check_password(password):
            raise AuthError("Invalid credentials")
        return user, AuthService.issue_token(user)

    @staticmethod
    def profile(user_id: int) -> Dict[str, Any]:
        user = repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_dict()

    @staticmethod
    def update_profile(user_id: int, username: str, email: str) -> Dict[str, Any]:
        user = repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if repository.exists_with(email, username, exclude_id=user_id):
            raise ConflictError("Username or email already taken")

        user.username = username
        user.email = email
        repository.update(user)
        return user.to_dict()
