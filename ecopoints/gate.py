# ecopoints/gate.py
"""Admin Gate: every privileged endpoint goes through :func:`require_admin`."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ecopoints import models
from ecopoints.core.config import Settings
from ecopoints.core.security import TokenClaims, decode_token
from ecopoints.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


def bearer_credential(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def resolve_session(db: Session, token: Optional[str], settings: Settings) -> tuple[TokenClaims, models.User]:
    if not token:
        raise Unauthorized("Authentication required")

    claims = decode_token(token, settings)
    user = db.get(models.User, claims.user_id)
    if user is None:
        logger.warning("Token subject %s no longer exists", claims.user_id)
        raise Unauthorized("Invalid or expired token")
    return claims, user


def require_admin(db: Session, token: Optional[str], settings: Settings) -> models.User:
    claims, user = resolve_session(db, token, settings)
    # privilege comes from the signed claims, not from the caller-supplied id
    if not claims.is_admin:
        logger.warning("Non-admin user %s attempted an admin operation", claims.user_id)
        raise Forbidden("Unauthorized access")
    return user
