"""
Auth Module - Dependencies
===========================
FastAPI dependencies for caller identification and authorization.
These are injected into route handlers via Depends().

The bearer token is decoded into a Principal; services never see the token.
"""

from typing import Optional

from fastapi import Request, Depends

from common.exceptions import AuthenticationError, AuthorizationError
from common.security import Principal, decode_token, principal_from_payload


def get_current_principal(request: Request) -> Optional[Principal]:
    """
    Identify the caller from the `Authorization: Bearer <jwt>` header.
    Returns Principal or None.
    """
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    payload = decode_token(token.strip())
    if not payload:
        return None

    return principal_from_payload(payload)


def require_user(request: Request) -> Principal:
    """Require any authenticated caller. Raises 401 if the token is missing or invalid."""
    header = request.headers.get("authorization", "")
    if not header.lower().startswith("bearer "):
        raise AuthenticationError("No token provided or invalid format")

    principal = get_current_principal(request)
    if not principal:
        raise AuthenticationError("Invalid or expired token")
    return principal


def require_admin(principal: Principal = Depends(require_user)) -> Principal:
    """Only allow admin callers. Raises 403 otherwise."""
    if not principal.is_admin:
        raise AuthorizationError()
    return principal
