"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mvstudio import __version__
from mvstudio.config import Settings, settings
from mvstudio.logging_config import configure_logging

# Console logs in local mode, JSON lines everywhere else
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


def _warn_unconfigured_providers(app_settings: Settings) -> None:
    from mvstudio.providers.config import endpoints_from_settings

    # publish platforms authenticate with the user's own token instead
    missing = [
        name
        for name, endpoint in endpoints_from_settings(app_settings).items()
        if name in ("suno", "musicgpt", "kling", "runway") and not endpoint.api_key
    ]
    if missing:
        logger.warning("No API key configured for: %s; their jobs will fail with PROVIDER_AUTH_ERROR", ", ".join(missing))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and build the provider registry; dispose on shutdown."""
    from mvstudio.db.engine import create_all_tables, create_db_engine, create_session_factory
    from mvstudio.providers.registry import ProviderRegistry

    app_settings: Settings = app.state.settings
    db_url = app_settings.effective_database_url
    engine = create_db_engine(db_url)

    # SQLite runs without migrations: build the schema from the ORM models
    if db_url.startswith("sqlite"):
        await create_all_tables(engine)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)
    app.state.provider_registry = ProviderRegistry.from_settings(app_settings)
    _warn_unconfigured_providers(app_settings)

    logger.info("mvstudio API started (db=%s)", engine.dialect.name)
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("mvstudio API shutdown complete")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the app; ``app_settings`` defaults to the environment-derived settings."""
    app_settings = app_settings or settings
    app = FastAPI(
        title="mvstudio API",
        version=__version__,
        description="Music video projects: AI music and video generation jobs and social publishing.",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Trace-Id"],
    )

    # Last added runs first: trace id is bound before auth logs anything
    from mvstudio.api.middleware.auth import AuthMiddleware
    from mvstudio.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from mvstudio.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from mvstudio.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
