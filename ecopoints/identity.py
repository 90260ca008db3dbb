# ecopoints/identity.py
"""Identity provider clients.

The provider owns account creation for the registration paths. When no
external provider is configured, the local ``users`` table is the single
source of truth and :class:`LocalIdentityProvider` only mints ids.
"""
from __future__ import annotations

import enum
import logging
import uuid
from typing import Any, Dict, Optional, Protocol

import httpx

from ecopoints.core.config import Settings

logger = logging.getLogger(__name__)


class IdentityErrorKind(str, enum.Enum):
    WEAK_PASSWORD = "weak_password"
    DUPLICATE = "duplicate"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"


class IdentityError(Exception):
    def __init__(self, kind: IdentityErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


class IdentityProvider(Protocol):
    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> str:
        ...

    def delete_user(self, user_id: str) -> None:
        ...

    def check(self) -> None:
        ...


class LocalIdentityProvider:
    name = "local"

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> str:
        return str(uuid.uuid4())

    def delete_user(self, user_id: str) -> None:
        # nothing is held outside the users table
        return None

    def check(self) -> None:
        return None


# Supabase GoTrue error codes -> our kinds
_SUPABASE_ERROR_CODES = {
    "weak_password": IdentityErrorKind.WEAK_PASSWORD,
    "user_already_exists": IdentityErrorKind.DUPLICATE,
    "email_exists": IdentityErrorKind.DUPLICATE,
    "phone_exists": IdentityErrorKind.DUPLICATE,
}


class SupabaseIdentityProvider:
    name = "supabase"

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_role_key: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/auth/v1",
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, *, key: str, **kwargs) -> httpx.Response:
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        try:
            return self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise IdentityError(IdentityErrorKind.UNAVAILABLE, f"identity provider unreachable: {e}") from e

    @staticmethod
    def _error_from(resp: httpx.Response) -> IdentityError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        code = body.get("error_code") or body.get("error")
        message = body.get("msg") or body.get("message") or body.get("error_description") or resp.text

        kind = _SUPABASE_ERROR_CODES.get(str(code)) if code else None
        if kind is None:
            kind = IdentityErrorKind.UNAVAILABLE if resp.status_code >= 500 else IdentityErrorKind.REJECTED
        return IdentityError(kind, message or f"HTTP {resp.status_code}")

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> str:
        resp = self._request(
            "POST",
            "/signup",
            key=self.anon_key,
            json={"email": email, "password": password, "data": metadata},
        )
        if resp.status_code >= 400:
            raise self._error_from(resp)

        body = resp.json()
        # with email confirmation on, the user object is returned directly
        user = body.get("user") or body
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise IdentityError(IdentityErrorKind.REJECTED, "identity provider returned no user id")
        return str(user_id)

    def delete_user(self, user_id: str) -> None:
        if not self.service_role_key:
            raise IdentityError(IdentityErrorKind.REJECTED, "service role key required to delete users")
        resp = self._request("DELETE", f"/admin/users/{user_id}", key=self.service_role_key)
        if resp.status_code >= 400 and resp.status_code != 404:
            raise self._error_from(resp)

    def check(self) -> None:
        resp = self._request("GET", "/health", key=self.anon_key)
        if resp.status_code >= 400:
            raise self._error_from(resp)


def build_identity_provider(settings: Settings) -> IdentityProvider:
    if settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY:
        logger.info("Using Supabase identity provider at %s", settings.SUPABASE_URL)
        return SupabaseIdentityProvider(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )
    logger.info("No external identity provider configured; users table is the source of truth")
    return LocalIdentityProvider()
