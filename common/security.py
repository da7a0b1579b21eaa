"""
Storefront API - Security Utilities
====================================
JWT encode/decode and the Principal claim handed to the service layer.

NOTE: Token issuance lives outside this service; create_token exists for
tooling and tests that need a valid bearer token.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError

from config.settings import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from common.helpers import now_utc

logger = logging.getLogger("storefront.security")

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Pre-validated caller identity: opaque user id plus role."""
    user_id: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT carrying `data` plus an `exp` claim."""
    to_encode = data.copy()
    minutes = ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    to_encode["exp"] = now_utc() + timedelta(minutes=minutes)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except JWTError:
        return None


def principal_from_payload(payload: dict) -> Optional[Principal]:
    """Build a Principal from a decoded token (`userId` or `sub` claim)."""
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        return None
    role = payload.get("role") or ROLE_USER
    return Principal(user_id=str(user_id), role=role)
