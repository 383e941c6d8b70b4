from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.routes.takedowns import router as takedowns_router
from .core.config import get_settings
from .core.logging import configure_logging
from .db import dispose_engine, init_db
from .services.rate_limiter import RateLimiter, build_rate_limiter
from .telemetry import configure_tracing, setup_prometheus


def create_app(
    *,
    rate_limiter: RateLimiter | None = None,
    create_tables: bool = True,
) -> FastAPI:
    settings = get_settings()
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if create_tables:
            await init_db()
        app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)
        try:
            yield
        finally:
            await app.state.rate_limiter.close()
            await dispose_engine()

    app = FastAPI(title=settings.project_name, version=__version__, lifespan=lifespan)

    allow_origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in allow_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    def healthz() -> dict[str, str | bool]:
        return {"ok": True, "service": "takedown-api"}

    app.include_router(takedowns_router, prefix=settings.api_v1_prefix)

    if settings.enable_prometheus_metrics:
        setup_prometheus(app)
    configure_tracing(app)

    return app


def run() -> None:
    """Console entry point serving the API with uvicorn."""

    uvicorn.run("takedown_api.main:app", host="0.0.0.0", port=8000)


app = create_app()
