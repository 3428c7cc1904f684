# backend/backoffice/routes/auth.py
"""
Authentication API routes

- POST /auth/login   email + password -> bearer session token
- POST /auth/logout  revokes the presented token
- GET  /auth/me      the authenticated user
- PUT  /auth/me      change own name and/or password

Administrators manage other accounts under /users or with the CLI
(flask users create).
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import failure, success
from ..services import auth_service, session_service
from ..time_utils import to_epoch_ms
from ..validation import LOGIN_POLICY, UPDATE_ME_POLICY, validate_payload
from . import API_PREFIX

auth_bp = Blueprint("auth", __name__, url_prefix=f"{API_PREFIX}/auth")


@auth_bp.post("/login")
def login_route():
    data = validate_payload(request.get_json(silent=True), LOGIN_POLICY)

    user = auth_service.authenticate(data["email"], data["password"])
    if not user:
        current_app.logger.info("Failed login for %s", data["email"])
        return failure("Invalid email or password", 401)

    session, token = session_service.create_session(user.id)
    return success({
        "token": token,
        "expires_at": to_epoch_ms(session.expires_at),
        "user": user.to_dict(),
    }, message="Login successful")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return success(None, message="Logged out")


@auth_bp.get("/me")
@require_auth
def me_route():
    return success(g.current_user.to_dict())


@auth_bp.put("/me")
@require_auth
def update_me_route():
    data = validate_payload(request.get_json(silent=True), UPDATE_ME_POLICY, partial=True)
    user = auth_service.update_profile(g.current_user, **data)
    return success(user.to_dict(), message="Profile updated")
