# Overview: Request decorators for API routes (bearer authentication and role checks).

from functools import wraps

from flask import current_app, g, request

from .permissions import is_role_permitted
from .responses import failure
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer session token.

    Sets g.current_user and g.session_token. Returns 401 if the header is
    missing or the token is invalid, expired, revoked, or belongs to a
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return failure("Authentication required", 401)

        user = session_service.validate_session(token)
        if user is None:
            return failure("Invalid or expired token", 401)

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Require one of roles. Must be applied below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return failure("Authentication required", 401)

            if not is_role_permitted(user.role, roles):
                current_app.logger.info(
                    "Permission denied user_id=%s role=%s path=%s", user.id, user.role, request.path
                )
                return failure("Insufficient permissions", 403)

            return f(*args, **kwargs)

        return decorated_function

    return decorator
