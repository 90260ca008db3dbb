# ecopoints/auth.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ecopoints import models
from ecopoints.core.config import Settings
from ecopoints.core.security import MAX_PASSWORD_BYTES, hash_password, issue_token, verify_password
from ecopoints.errors import (
    DuplicateIdentity,
    InvalidCredentials,
    RegistrationFailed,
    WeakPassword,
)
from ecopoints.identity import IdentityError, IdentityErrorKind, IdentityProvider

logger = logging.getLogger(__name__)


def synthesize_email(username: str, domain: str) -> str:
    username = username.strip()
    return username if "@" in username else f"{username}@{domain}"


def find_user_by_identifier(db: Session, identifier: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(or_(models.User.username == identifier, models.User.email == identifier))
        .first()
    )


# -------- Login --------

def authenticate(db: Session, identifier: str, password: str, settings: Settings) -> Tuple[str, models.User]:
    user = find_user_by_identifier(db, identifier)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Rejected login for %r", identifier)
        raise InvalidCredentials()

    token = issue_token(user.id, user.is_admin, settings)
    return token, user


# -------- Registration --------

def _check_password(password: str, settings: Settings) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise WeakPassword(
            error=f"weak_password: Password should be at least {settings.PASSWORD_MIN_LENGTH} characters long"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise WeakPassword(error=f"weak_password: Password should be at most {MAX_PASSWORD_BYTES} bytes long")


def _ensure_available(db: Session, *, username: Optional[str], email: str) -> None:
    clauses = [models.User.email == email]
    if username:
        clauses.append(models.User.username == username)
    if db.query(models.User.id).filter(or_(*clauses)).first():
        raise DuplicateIdentity(error="duplicate: username or email is already registered")


def _provider_sign_up(provider: IdentityProvider, email: str, password: str, metadata: Dict[str, Any]) -> str:
    try:
        return provider.sign_up(email, password, metadata)
    except IdentityError as e:
        if e.kind is IdentityErrorKind.WEAK_PASSWORD:
            raise WeakPassword(error=f"weak_password: {e.message}") from e
        if e.kind is IdentityErrorKind.DUPLICATE:
            raise DuplicateIdentity(error=f"duplicate: {e.message}") from e
        raise RegistrationFailed(error=e.message) from e


def _compensate(provider: IdentityProvider, user_id: str) -> None:
    try:
        provider.delete_user(user_id)
        logger.info("Rolled back identity-provider account %s", user_id)
    except IdentityError:
        logger.exception("Could not delete orphaned identity-provider account %s", user_id)


def _create_profile(
    db: Session,
    provider: IdentityProvider,
    *,
    name: str,
    username: Optional[str],
    email: str,
    password: str,
    settings: Settings,
) -> models.User:
    """Provider account first, then the local profile; undo the former if the latter fails."""
    _ensure_available(db, username=username, email=email)

    metadata: Dict[str, Any] = {"name": name}
    if username:
        metadata["username"] = username
    password_hash = hash_password(password, settings.BCRYPT_ROUNDS)
    user_id = _provider_sign_up(provider, email, password, metadata)

    user = models.User(
        id=user_id,
        name=name,
        username=username,
        email=email,
        password_hash=password_hash,
        points=0,
        money=Decimal("0"),
        is_admin=False,
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        _compensate(provider, user_id)
        raise DuplicateIdentity(error="duplicate: username or email is already registered") from e
    except SQLAlchemyError:
        db.rollback()
        _compensate(provider, user_id)
        raise

    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, username or email)
    return user


def register(
    db: Session,
    provider: IdentityProvider,
    *,
    name: str,
    username: str,
    password: str,
    settings: Settings,
) -> Tuple[str, models.User]:
    _check_password(password, settings)
    username = username.strip()
    email = synthesize_email(username, settings.EMAIL_DOMAIN)

    user = _create_profile(
        db,
        provider,
        name=name,
        username=username,
        email=email,
        password=password,
        settings=settings,
    )
    return issue_token(user.id, user.is_admin, settings), user


def signup(
    db: Session,
    provider: IdentityProvider,
    *,
    email: str,
    password: str,
    name: str,
    settings: Settings,
) -> models.User:
    _check_password(password, settings)
    return _create_profile(
        db,
        provider,
        name=name,
        username=None,
        email=email.strip(),
        password=password,
        settings=settings,
    )
