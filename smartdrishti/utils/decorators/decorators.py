from functools import wraps

from flask_jwt_extended import current_user, verify_jwt_in_request

from smartdrishti.models.Users import UserRole
from smartdrishti.utils.errors import ForbiddenError


def role_required(role_name):
    """
    Restricts a view to users holding ``role_name`` ('admin' or UserRole.ADMIN).
    Requires a valid bearer token; the token's user is resolved by the JWT user loader.
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()

            if isinstance(role_name, str):
                required_role = UserRole(role_name)
            else:
                required_role = role_name

            if current_user.role != required_role:
                raise ForbiddenError("Insufficient permissions")

            return f(*args, **kwargs)
        return decorated_function
    return decorator
