from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from ecopoints.core.security import decode_token, hash_password, issue_token, verify_password
from ecopoints.errors import Unauthorized


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse", rounds=4)
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_same_password_gets_distinct_salts():
    assert hash_password("abcdef", rounds=4) != hash_password("abcdef", rounds=4)


@pytest.mark.parametrize("stored", [None, "", "not-a-bcrypt-hash"])
def test_verify_password_rejects_missing_or_malformed_hash(stored):
    assert verify_password("whatever", stored) is False


def test_token_carries_user_and_admin_flag(settings):
    claims = decode_token(issue_token("user-1", True, settings), settings)
    assert claims.user_id == "user-1"
    assert claims.is_admin is True


def test_token_expires_after_24_hours(settings):
    now = datetime.now(timezone.utc)
    claims = decode_token(issue_token("user-1", False, settings, now=now), settings)
    delta = claims.expires_at - now
    assert timedelta(hours=23, minutes=59) < delta <= timedelta(hours=24)


def test_expired_token_is_rejected(settings):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = issue_token("user-1", True, settings, now=issued)
    with pytest.raises(Unauthorized):
        decode_token(token, settings)


def test_token_signed_with_other_secret_is_rejected(settings):
    forged = jwt.encode(
        {"sub": "user-1", "is_admin": True, "exp": int(datetime.now(timezone.utc).timestamp()) + 3600},
        "not-the-secret",
        algorithm="HS256",
    )
    with pytest.raises(Unauthorized):
        decode_token(forged, settings)


def test_token_without_admin_claim_is_rejected(settings):
    token = jwt.encode(
        {"sub": "user-1", "exp": int(datetime.now(timezone.utc).timestamp()) + 3600},
        settings.JWT_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(Unauthorized):
        decode_token(token, settings)


def test_garbage_token_is_rejected(settings):
    with pytest.raises(Unauthorized):
        decode_token("user-1", settings)


def test_verify_password_refuses_over_long_input():
    hashed = hash_password("x" * 72, rounds=4)
    assert verify_password("x" * 72, hashed)
    assert verify_password("x" * 73, hashed) is False
