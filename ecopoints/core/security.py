# ecopoints/core/security.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from ecopoints.core.config import Settings
from ecopoints.errors import Unauthorized

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    is_admin: bool
    expires_at: datetime


# -------- Passwords --------

def hash_password(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed / non-bcrypt hash
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# -------- Session tokens --------

def issue_token(user_id: str, is_admin: bool, settings: Settings, *, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "is_admin": bool(is_admin),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=settings.JWT_EXPIRE_HOURS)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, settings: Settings) -> TokenClaims:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise Unauthorized("Invalid or expired token") from e

    sub = payload.get("sub")
    is_admin = payload.get("is_admin")
    exp = payload.get("exp")
    if not sub or not isinstance(is_admin, bool) or exp is None:
        raise Unauthorized("Invalid or expired token")

    return TokenClaims(
        user_id=str(sub),
        is_admin=is_admin,
        expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
    )
