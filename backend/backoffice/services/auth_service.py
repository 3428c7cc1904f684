# Overview: User accounts and password verification.

"""
Authentication Service

Every stock movement and document carries created_by, so every action must be
attributable to a user.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExists, NotFound, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import VALID_ROLES
from . import session_service


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        current_app.logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_user(name: str, email: str, password: str, role: str) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        ValidationError: unknown role or weak password
        AlreadyExists: email already registered
    """
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    email = email.strip().lower()
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise AlreadyExists("A user with this email already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyExists("A user with this email already exists") from exc

    current_app.logger.info("User created id=%s role=%s", user.id, role)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active User whose credentials match, None otherwise.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        return user

    return None


USER_MUTABLE_FIELDS = {"name", "email", "role", "is_active"}


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_user(user_id: int, *, patch: dict) -> User:
    """
    Admin edit of another account (name, email, role, is_active).

    Deactivating a user revokes every open session in the same request.
    """
    user = get_user(user_id)

    if "role" in patch and patch["role"] not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")

    if "email" in patch:
        patch = {**patch, "email": patch["email"].strip().lower()}
        taken = db.session.query(User.id).filter(User.email == patch["email"], User.id != user.id).first()
        if taken is not None:
            raise AlreadyExists("A user with this email already exists")

    was_active = user.is_active
    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)

    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyExists("A user with this email already exists") from exc

    if was_active and not user.is_active:
        revoked = session_service.revoke_all_user_sessions(user.id)
        current_app.logger.info("User deactivated id=%s; revoked %s session(s)", user.id, revoked)
    return user


def deactivate_user(user_id: int) -> int:
    """Soft delete: is_active=False and all sessions revoked. Returns the revoked count."""
    user = get_user(user_id)
    user.is_active = False
    db.session.commit()
    revoked = session_service.revoke_all_user_sessions(user.id)
    current_app.logger.info("User deactivated id=%s; revoked %s session(s)", user.id, revoked)
    return revoked


def update_profile(user: User, *, name: str | None = None, password: str | None = None) -> User:
    """Self-service change of display name and/or password."""
    if password is not None:
        user.password_hash = hash_password(password)
    if name is not None:
        user.name = name.strip()
    db.session.commit()
    return user
