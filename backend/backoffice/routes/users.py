# backend/backoffice/routes/users.py
"""
User administration (admin only).

DELETE deactivates the account and revokes its sessions; users are never
hard-deleted because orders and stock movements reference them.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..permissions import ADMIN_ONLY
from ..responses import success
from ..services import auth_service
from ..validation import CREATE_USER_POLICY, UPDATE_USER_POLICY, validate_payload
from . import API_PREFIX

users_bp = Blueprint("users", __name__, url_prefix=f"{API_PREFIX}/users")


@users_bp.get("")
@require_auth
@require_roles(*ADMIN_ONLY)
def list_users():
    return success([u.to_dict() for u in auth_service.list_users()])


@users_bp.get("/<int:user_id>")
@require_auth
@require_roles(*ADMIN_ONLY)
def get_user(user_id: int):
    return success(auth_service.get_user(user_id).to_dict())


@users_bp.post("")
@require_auth
@require_roles(*ADMIN_ONLY)
def create_user():
    data = validate_payload(request.get_json(silent=True), CREATE_USER_POLICY)
    user = auth_service.create_user(**data)
    return success(user.to_dict(), message="User created", status=201)


@users_bp.put("/<int:user_id>")
@require_auth
@require_roles(*ADMIN_ONLY)
def update_user(user_id: int):
    patch = validate_payload(request.get_json(silent=True), UPDATE_USER_POLICY, partial=True)
    user = auth_service.update_user(user_id, patch=patch)
    return success(user.to_dict(), message="User updated")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_roles(*ADMIN_ONLY)
def deactivate_user(user_id: int):
    auth_service.deactivate_user(user_id)
    return success(None, message="User deactivated")
