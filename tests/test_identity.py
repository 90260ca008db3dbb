import json

import httpx
import pytest

from ecopoints.core.config import Settings
from ecopoints.identity import (
    IdentityError,
    IdentityErrorKind,
    LocalIdentityProvider,
    SupabaseIdentityProvider,
    build_identity_provider,
)


def _provider(handler, service_role_key="service-key"):
    return SupabaseIdentityProvider(
        "https://project.supabase.co/",
        "anon-key",
        service_role_key,
        transport=httpx.MockTransport(handler),
    )


def test_sign_up_posts_credentials_and_returns_user_id():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers["apikey"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "abc-123", "email": "bob@ecopoints.com"})

    user_id = _provider(handler).sign_up("bob@ecopoints.com", "hunter22", {"username": "bob"})

    assert user_id == "abc-123"
    assert seen["url"] == "https://project.supabase.co/auth/v1/signup"
    assert seen["apikey"] == "anon-key"
    assert seen["body"] == {"email": "bob@ecopoints.com", "password": "hunter22", "data": {"username": "bob"}}


def test_sign_up_reads_user_from_session_response():
    def handler(request):
        return httpx.Response(200, json={"access_token": "t", "user": {"id": "abc-456"}})

    assert _provider(handler).sign_up("a@b.c", "hunter22", {}) == "abc-456"


@pytest.mark.parametrize(
    "status,body,kind",
    [
        (422, {"error_code": "weak_password", "msg": "Password should be at least 6 characters"}, IdentityErrorKind.WEAK_PASSWORD),
        (422, {"error_code": "user_already_exists", "msg": "User already registered"}, IdentityErrorKind.DUPLICATE),
        (422, {"error_code": "email_exists", "msg": "Email exists"}, IdentityErrorKind.DUPLICATE),
        (400, {"error_code": "validation_failed", "msg": "Unable to validate email address"}, IdentityErrorKind.REJECTED),
        (503, {"message": "upstream down"}, IdentityErrorKind.UNAVAILABLE),
    ],
)
def test_sign_up_errors_become_structured_kinds(status, body, kind):
    def handler(request):
        return httpx.Response(status, json=body)

    with pytest.raises(IdentityError) as exc:
        _provider(handler).sign_up("a@b.c", "hunter22", {})
    assert exc.value.kind is kind


def test_sign_up_transport_failure_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityError) as exc:
        _provider(handler).sign_up("a@b.c", "hunter22", {})
    assert exc.value.kind is IdentityErrorKind.UNAVAILABLE


def test_sign_up_without_id_is_rejected():
    def handler(request):
        return httpx.Response(200, json={})

    with pytest.raises(IdentityError) as exc:
        _provider(handler).sign_up("a@b.c", "hunter22", {})
    assert exc.value.kind is IdentityErrorKind.REJECTED


def test_delete_user_uses_service_role_key():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={})

    _provider(handler).delete_user("abc-123")

    assert seen == {"method": "DELETE", "path": "/auth/v1/admin/users/abc-123", "auth": "Bearer service-key"}


def test_delete_missing_user_is_not_an_error():
    _provider(lambda request: httpx.Response(404, json={"msg": "User not found"})).delete_user("gone")


def test_delete_requires_service_role_key():
    provider = _provider(lambda request: httpx.Response(200, json={}), service_role_key=None)
    with pytest.raises(IdentityError):
        provider.delete_user("abc-123")


def test_local_provider_issues_unique_ids():
    provider = LocalIdentityProvider()
    first = provider.sign_up("a@b.c", "hunter22", {})
    second = provider.sign_up("a@b.c", "hunter22", {})
    assert first != second


def test_build_identity_provider_picks_supabase_when_configured():
    settings = Settings(_env_file=None, SUPABASE_URL="https://project.supabase.co", SUPABASE_ANON_KEY="anon")
    provider = build_identity_provider(settings)
    try:
        assert isinstance(provider, SupabaseIdentityProvider)
    finally:
        provider.close()


def test_build_identity_provider_defaults_to_local():
    assert isinstance(build_identity_provider(Settings(_env_file=None)), LocalIdentityProvider)
