# ecopoints/monitoring.py
from __future__ import annotations

import time
from typing import Any, Dict, List

from sqlalchemy.engine import Engine

from ecopoints.core.config import DEV_JWT_SECRET, Settings
from ecopoints.database import ping
from ecopoints.identity import IdentityError, IdentityProvider


def _check(name: str, ok: bool, detail: str = "", extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    row: Dict[str, Any] = {"name": name, "ok": bool(ok)}
    if detail:
        row["detail"] = detail
    if extra:
        row["extra"] = extra
    return row


def run_selftest(
    settings: Settings,
    engine: Engine,
    identity_provider: IdentityProvider,
    quick: bool = True,
) -> dict:
    checks: List[Dict[str, Any]] = []

    # --- ENV sanity ---
    checks.append(_check("env:DATABASE_URL", bool(settings.DATABASE_URL)))
    checks.append(
        _check(
            "env:JWT_SECRET",
            bool(settings.JWT_SECRET) and settings.JWT_SECRET != DEV_JWT_SECRET,
            detail="" if settings.JWT_SECRET != DEV_JWT_SECRET else "development secret in use",
        )
    )

    # --- DB ---
    db_ok = False
    db_err = ""
    t0 = time.time()
    try:
        ping(engine)
        db_ok = True
    except Exception as e:
        db_err = repr(e)

    checks.append(_check("db:select1", db_ok, detail=db_err, extra={"ms": int((time.time() - t0) * 1000)}))

    # --- Identity provider (full run only) ---
    if not quick:
        idp_ok = False
        idp_err = ""
        t0 = time.time()
        try:
            identity_provider.check()
            idp_ok = True
        except IdentityError as e:
            idp_err = f"{e.kind.value}: {e.message}"

        name = getattr(identity_provider, "name", type(identity_provider).__name__)
        checks.append(
            _check(f"identity:{name}", idp_ok, detail=idp_err, extra={"ms": int((time.time() - t0) * 1000)})
        )

    status = "ok" if all(c.get("ok") for c in checks) else "degraded"
    return {"status": status, "checks": checks}
