# services/api/core/auth.py
"""
Bearer-token verification.

Tokens are HS256 JWTs carrying the acting user's id in the `id` claim
(`sub` is accepted as well). Token issuance belongs to the account service;
`issue_token` exists for local development and tests.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
from fastapi import Header, HTTPException, status

from settings import get_settings

logger = logging.getLogger(__name__)


def issue_token(user_id: str, *, expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    minutes = settings.jwt_expire_minutes if expires_minutes is None else expires_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> str:
    """
    Decode a token and return the acting user id.

    Raises:
        jwt.PyJWTError: invalid signature, expired, or malformed token
        ValueError: the token carries no user id
    """
    settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise ValueError("token has no user id")
    return str(user_id)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    Resolve the acting user from `Authorization: Bearer <token>`.

    Raises:
        HTTPException: 401 if the header is missing/malformed or the token is invalid
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Authorization token missing")

    token = authorization[7:].strip()  # Strip "Bearer "
    if not token:
        raise _unauthorized("Authorization token missing")

    try:
        return verify_token(token)
    except (jwt.PyJWTError, ValueError) as e:
        logger.info(f"JWT verification failed: {e}")
        raise _unauthorized("Invalid or expired token") from e
