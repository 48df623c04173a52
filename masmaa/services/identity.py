"""Caller identity from the hosted auth service's bearer tokens."""

import logging
from typing import Literal

import jwt
from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from masmaa.config import get_settings

logger = logging.getLogger(__name__)

Role = Literal["user", "admin", "super_admin"]

ROLES: tuple[str, ...] = ("user", "admin", "super_admin")
ADMIN_ROLES = frozenset({"admin", "super_admin"})


class Actor(BaseModel):
    id: str
    email: str | None = None
    role: Role = "user"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class AuthError(Exception):
    pass


def decode_token(token: str) -> Actor:
    """Verify an HS256 access token and read the actor from its claims.

    The role lives in ``app_metadata.role``; anything unrecognised is a
    plain user.
    """
    settings = get_settings()
    if not settings.auth_jwt_secret:
        raise AuthError("Authentication is not configured")
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            audience=settings.auth_jwt_audience,
        )
    except jwt.PyJWTError as e:
        raise AuthError(str(e)) from e

    subject = claims.get("sub")
    if not subject:
        raise AuthError("Token has no subject")
    role = (claims.get("app_metadata") or {}).get("role", "user")
    return Actor(
        id=subject,
        email=claims.get("email"),
        role=role if role in ROLES else "user",
    )


async def get_current_actor(authorization: str | None = Header(default=None)) -> Actor:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return decode_token(authorization[7:].strip())
    except AuthError as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token") from e


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor
