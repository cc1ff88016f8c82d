"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from appforge import __version__
from appforge.config import settings
from appforge.db.engine import create_db_engine, create_session_factory
from appforge.logging_config import configure_logging
from appforge.services.generation.provider import AnthropicGenerativeService
from appforge.services.generator import ApplicationGenerator
from appforge.services.locks import AppLockRegistry
from appforge.services.orchestrator import EditOrchestrator
from appforge.storage.store import SqlAppStore

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


def attach_services(app: FastAPI, session_factory, service) -> None:
    """Wire the store and pipelines onto ``app.state``."""
    store = SqlAppStore(session_factory)
    app.state.db_session_factory = session_factory
    app.state.store = store
    app.state.generator = ApplicationGenerator(store, service)
    app.state.orchestrator = EditOrchestrator(store, service, AppLockRegistry())
    app.state.pipeline_tasks = set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no migrations)
    if "sqlite" in db_url:
        from appforge.db.base import Base
        import appforge.db.models  # noqa: F401 (register all ORM models)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    attach_services(app, create_session_factory(engine), AnthropicGenerativeService())

    logger.info("AppForge API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # In-flight pipelines run to completion
    for task in list(app.state.pipeline_tasks):
        await task
    await engine.dispose()
    logger.info("AppForge API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="AppForge API",
        version=__version__,
        description="Generates database-backed single-page applications and edits them incrementally.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from appforge.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from appforge.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from appforge.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
