"""
Test configuration: every test gets its own SQLite database file and app.
"""
from contextlib import contextmanager
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ecopoints import models
from ecopoints.core.config import Settings
from ecopoints.core.security import hash_password, issue_token
from ecopoints.database import db_session
from ecopoints.identity import LocalIdentityProvider
from ecopoints.main import create_app

PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'ecopoints-test.db'}",
        JWT_SECRET="test-signing-secret",
        BCRYPT_ROUNDS=4,
        SUPABASE_URL=None,
    )


@pytest.fixture
def identity_provider():
    return LocalIdentityProvider()


@pytest.fixture
def app(settings, identity_provider):
    return create_app(settings, identity_provider=identity_provider)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_scope(client, app):
    """Short-lived sessions only: an open session holds the SQLite write lock."""

    @contextmanager
    def _scope():
        with db_session(app.state.sessionmaker) as db:
            yield db

    return _scope


@pytest.fixture
def make_user(session_scope):
    def _make(name, username, *, points=0, money=0, is_admin=False, password=PASSWORD):
        with session_scope() as db:
            user = models.User(
                id=f"user-{username}",
                name=name,
                username=username,
                email=f"{username}@ecopoints.com",
                password_hash=hash_password(password, 4),
                points=points,
                money=Decimal(str(money)),
                is_admin=is_admin,
            )
            db.add(user)
        return f"user-{username}"

    return _make


@pytest.fixture
def get_user(session_scope):
    def _get(user_id):
        with session_scope() as db:
            user = db.get(models.User, user_id)
            if user is None:
                return None
            return {
                "id": user.id,
                "points": user.points,
                "money": Decimal(str(user.money)),
                "is_admin": user.is_admin,
            }

    return _get


@pytest.fixture
def auth_header(settings):
    def _header(user_id, is_admin=False):
        return {"Authorization": f"Bearer {issue_token(user_id, is_admin, settings)}"}

    return _header


@pytest.fixture
def admin(make_user):
    return make_user("Admin", "admin", is_admin=True)


@pytest.fixture
def admin_headers(admin, auth_header):
    return auth_header(admin, is_admin=True)
