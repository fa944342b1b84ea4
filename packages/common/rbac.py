"""RBAC utilities for FastAPI dependencies.

Provides:
- `Role` names used across the platform
- `has_capability(role, required)` the single capability check
- `require_roles(*allowed)` a dependency factory applying that check to the
  authenticated user (from `get_current_user`)
"""

from enum import Enum
from typing import Callable, Iterable
from fastapi import Depends, HTTPException, status
from .auth import get_current_user, User


class Role(str, Enum):
    ADMIN = "ADMIN"
    CREATOR = "CREATOR"
    USER = "USER"


ANY_ROLE = frozenset(r.value for r in Role)


def _role_name(role: "str | Role") -> str:
    return getattr(role, "value", role).upper()


def has_capability(role: "str | Role", required: Iterable["str | Role"]) -> bool:
    """Return True when `role` is one of the `required` roles (case-insensitive)."""
    return _role_name(role) in {_role_name(r) for r in required}


def require_roles(*allowed: str) -> Callable[[User], User]:
    """Create a dependency that enforces one of the given roles.

    Args:
        allowed: Role names; the user needs at least one of them.

    Returns:
        A FastAPI dependency callable that:
          - receives the current `User` (via `Depends(get_current_user)`)
          - raises 403 if none of the user's roles is allowed
          - otherwise returns the `User`
    """
    required = frozenset(allowed)

    def wrapper(user: User = Depends(get_current_user)) -> User:
        """Validate the current user's roles against the allowed set."""
        if not any(has_capability(role, required) for role in user.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return user

    return wrapper
