"""Caller identity for the odds API.

Tokens are issued by the auth service; this module only verifies them.
"""

import logging

import jwt
from fastapi import HTTPException, Request, status
from jwt.exceptions import InvalidTokenError as JWTError

from oddsline.config import settings

logger = logging.getLogger("oddsline.auth")

ALGORITHM = "HS256"


def decode_jwt(token: str) -> dict:
    """Decode a JWT, trying the current secret first, then the old one.

    JWT_SECRET_OLD allows zero-downtime rotation: set the new secret, keep
    the previous one until all tokens signed with it have expired.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        if settings.JWT_SECRET_OLD:
            return jwt.decode(token, settings.JWT_SECRET_OLD, algorithms=[ALGORITHM])
        raise


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get("access_token")


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency: the authenticated user's id (token ``sub``)."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not configured; rejecting request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token.",
        )
    try:
        payload = decode_jwt(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token.",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token.",
        )
    return str(user_id)
