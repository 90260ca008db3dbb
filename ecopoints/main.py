# ecopoints/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ecopoints import schemas
from ecopoints.api import router as api_router
from ecopoints.core.config import Settings, load_settings
from ecopoints.database import build_engine, build_sessionmaker, init_db
from ecopoints.errors import install_error_handlers
from ecopoints.identity import IdentityProvider, build_identity_provider
from ecopoints.monitoring import run_selftest

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # an unreachable database is fatal
        try:
            init_db(app.state.engine)
        except Exception:
            logger.exception("DB init failed (startup)")
            raise
        logger.info("DB initialized")

        yield

        close = getattr(app.state.identity_provider, "close", None)
        if close is not None:
            close()
        app.state.engine.dispose()

    app = FastAPI(title="EcoPoints API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)
    app.state.identity_provider = identity_provider or build_identity_provider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {"message": "EcoPoints API is running"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/ready", response_model=schemas.SelfTestOut)
    def ready(request: Request):
        st = request.app.state
        result = run_selftest(st.settings, st.engine, st.identity_provider, quick=True)
        return {"status": result.get("status", "unknown"), "checks": result.get("checks", [])}

    @app.get("/selftest", response_model=schemas.SelfTestOut)
    def selftest(request: Request):
        st = request.app.state
        return run_selftest(st.settings, st.engine, st.identity_provider, quick=False)

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
