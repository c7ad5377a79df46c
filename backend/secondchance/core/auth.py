"""Founder token verification for FastAPI.

Tokens are issued by the login flow (out of scope here); this module only
verifies them and extracts the founder id.
"""

import uuid
from dataclasses import dataclass

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from secondchance.core.config import get_settings

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class FounderPrincipal:
    """Authenticated founder extracted from a bearer token."""

    founder_id: str
    claims: dict

    @property
    def founder_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.founder_id)


def decode_founder_token(token: str) -> FounderPrincipal:
    """Decode and verify a founder JWT.

    The founder id is read from the ``founderId`` claim, falling back to ``sub``.

    Raises:
        HTTPException(401): If the token is invalid, expired or has no founder id
    """
    settings = get_settings()
    try:
        claims = pyjwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    founder_id = claims.get("founderId") or claims.get("sub")
    if not founder_id:
        raise HTTPException(status_code=401, detail="Token has no founder id")
    try:
        uuid.UUID(str(founder_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Token founder id is not a UUID")

    return FounderPrincipal(founder_id=str(founder_id), claims=claims)


async def require_founder(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> FounderPrincipal:
    """FastAPI dependency that requires a valid founder bearer token."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    principal = decode_founder_token(credentials.credentials)
    request.state.founder_id = principal.founder_id
    return principal
