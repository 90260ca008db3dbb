# ecopoints/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ecopoints import models
from ecopoints.core.config import Settings
from ecopoints.database import get_db
from ecopoints.gate import bearer_credential, require_admin
from ecopoints.identity import IdentityProvider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def admin_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.User:
    return require_admin(db, bearer_credential(authorization), settings)
