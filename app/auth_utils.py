# app/auth_utils.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.models import User

log = logging.getLogger("vitalis.auth")

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "access"

# auto_error=False so a missing header is a 401 rather than FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: int, minutes: Optional[int] = None) -> str:
    """Signed HS256 token for one user: sub, typ, iat and exp claims."""
    ttl = timedelta(minutes=minutes if minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    issued = datetime.now(timezone.utc)
    claims = {"sub": str(user_id), "typ": TOKEN_TYPE, "iat": issued, "exp": issued + ttl}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def user_id_from_token(token: str) -> int:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token_expired")
    except jwt.InvalidTokenError as e:
        log.debug("rejected token: %s", e)
        raise _unauthorized("invalid_token")

    sub = str(claims.get("sub") or "")
    if claims.get("typ") != TOKEN_TYPE or not sub.isdigit():
        raise _unauthorized("invalid_token")
    return int(sub)


def get_current_user(
    cred: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None or not cred.credentials:
        raise _unauthorized("not_authenticated")

    user = db.get(User, user_id_from_token(cred.credentials))
    if user is None:
        raise _unauthorized("invalid_token")
    return user
