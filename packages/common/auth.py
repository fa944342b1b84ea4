"""Auth helpers for FastAPI endpoints.

Provides:
- `User` Pydantic model for JWT subject
- `verify_jwt` to decode/validate bearer JWTs against the service settings
- `get_current_user` FastAPI dependency using HTTP Bearer auth

Token issuance lives with the identity provider; this service only verifies.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from pydantic import BaseModel
from .config import Settings

security = HTTPBearer(auto_error=False)


class User(BaseModel):
    """Authenticated user extracted from a validated JWT."""
    sub: str
    email: str | None = None
    roles: list[str] = []


def verify_jwt(token: str, settings: Settings) -> User:
    """Decode and validate a JWT and return a `User`.

    Validates signature, audience, expiration and, when configured, issuer.
    Raises HTTP 401 on any validation failure.

    Args:
        token: Bearer token string (JWT).
        settings: Service settings carrying the key, algorithm and audience.

    Returns:
        User: Parsed user info from token claims.
    """
    options = {"verify_exp": True, "require": ["sub"]}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_PUBLIC_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.OIDC_AUDIENCE,
            issuer=settings.OIDC_ISSUER,
            options=options,
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if not roles and payload.get("role"):
        # single-role tokens carry `role` instead of `roles`
        roles = [payload["role"]]
    return User(
        sub=str(payload["sub"]),
        email=payload.get("email"),
        roles=[str(r).upper() for r in roles],
    )


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """FastAPI dependency to extract the current user from Authorization header.

    Raises:
        HTTPException: 401 if credentials are missing or token is invalid.
    """
    if not creds:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing credentials",
        )
    return verify_jwt(creds.credentials, request.app.state.settings)
