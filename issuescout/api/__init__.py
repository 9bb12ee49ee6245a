"""IssueScout REST API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from issuescout.api.deps import (
    build_crawl_engine,
    dispose_engine,
    get_db_engine,
    init_session_factory,
    set_scheduler,
)
from issuescout.api.errors import register_error_handlers
from issuescout.api.routers import jobs, languages, phases
from issuescout.core.database import init_db
from issuescout.core.logging import setup_logging
from issuescout.core.settings import env_flag
from issuescout.engines.github.client import GitHubClient
from issuescout.scheduler import create_scheduler


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: init DB, start phase loops. Shutdown: stop loops, dispose engine."""
    factory = init_session_factory()
    if env_flag("ISSUESCOUT_CREATE_TABLES"):
        await init_db(get_db_engine())

    client = GitHubClient()
    scheduler = create_scheduler(factory, build_crawl_engine(client))
    set_scheduler(scheduler)
    await scheduler.start()
    yield
    await scheduler.stop()
    set_scheduler(None)
    await client.close()
    await dispose_engine()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="IssueScout",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(languages.router, prefix="/api/v1/languages", tags=["languages"])
    app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["jobs"])
    app.include_router(phases.router, prefix="/api/v1/phases", tags=["phases"])

    return app
