# Overview: Role-based access rules as a pure predicate plus the role sets each route family needs.

from __future__ import annotations

from typing import Iterable

from .models.auth import ROLE_ADMIN, ROLE_SALES, ROLE_WAREHOUSE, VALID_ROLES

ALL_ROLES = VALID_ROLES
SALES_ROLES = (ROLE_ADMIN, ROLE_SALES)
WAREHOUSE_ROLES = (ROLE_ADMIN, ROLE_WAREHOUSE)
ADMIN_ONLY = (ROLE_ADMIN,)


def is_role_permitted(actor_role: str | None, required_roles: Iterable[str]) -> bool:
    """
    True when actor_role is one of required_roles.

    An empty required_roles means "any authenticated user".
    """
    required = tuple(required_roles)
    if not required:
        return actor_role in VALID_ROLES
    return actor_role in required
