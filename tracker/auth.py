"""Password hashing, bearer tokens, and the current-user dependency."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Header
from werkzeug.security import check_password_hash, generate_password_hash

from .errors import UnauthorizedError


logger = logging.getLogger(__name__)

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET not defined")
    return secret


def _token_ttl() -> Optional[timedelta]:
    hours = os.getenv("JWT_TTL_HOURS")
    if not hours:
        return None
    return timedelta(hours=float(hours))


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def issue_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    claims: dict = {"userId": user_id, "iat": now}
    ttl = _token_ttl()
    if ttl is not None:
        claims["exp"] = now + ttl
    return jwt.encode(claims, _jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> str:
    """Return the user id carried by ``token``."""
    secret = _jwt_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.warning("rejected bearer token: %s", exc)
        raise UnauthorizedError("Unauthorized") from exc
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise UnauthorizedError("Invalid token")
    return user_id


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


async def get_current_user_id(authorization: Optional[str] = Header(default=None)) -> str:
    token = bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Missing Bearer token")
    return decode_token(token)
