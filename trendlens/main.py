"""FastAPI application entry point."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from trendlens.api import auth, bookmarks, health, trending, users
from trendlens.config.database import bootstrap_database, build_engine, build_session_factory
from trendlens.config.settings import Settings, settings as default_settings, validate_startup_settings
from trendlens.crawlers import SourceFactory, default_source_factory
from trendlens.middleware.error_handlers import register_exception_handlers
from trendlens.middleware.request_logging import log_requests
from trendlens.services.enrichment import EnrichmentService
from trendlens.services.llm import build_llm_call
from trendlens.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[Callable[[], Session]] = None,
    enrichment: Optional[EnrichmentService] = None,
    source_factory: Optional[SourceFactory] = None,
) -> FastAPI:
    """
    Build the application and its collaborators

    Collaborators not passed in are built from settings: the database is
    probed and its tables created, and the LLM client follows LLM_PROVIDER.

    Raises:
        ConfigurationError: required settings are missing or malformed
    """
    config = settings or default_settings
    validate_startup_settings(config)
    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT)

    if session_factory is None:
        engine = build_engine(config.DATABASE_URL)
        bootstrap_database(
            engine,
            max_attempts=config.DB_CONNECT_MAX_ATTEMPTS,
            retry_delay_seconds=config.DB_CONNECT_RETRY_DELAY_SECONDS,
        )
        session_factory = build_session_factory(engine)

    if enrichment is None:
        enrichment = EnrichmentService(
            llm_call=build_llm_call(config),
            max_attempts=config.ENRICHMENT_MAX_ATTEMPTS,
            backoff_base_seconds=config.ENRICHMENT_BACKOFF_BASE_SECONDS,
            backoff_max_seconds=config.ENRICHMENT_BACKOFF_MAX_SECONDS,
        )

    if source_factory is None:
        source_factory = default_source_factory(config)

    app = FastAPI(
        title=config.APP_NAME,
        description="Trending repositories with AI learning suggestions",
        version=config.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = config
    app.state.session_factory = session_factory
    app.state.enrichment = enrichment
    app.state.source_factory = source_factory

    app.middleware("http")(log_requests)
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.SESSION_SECRET,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        same_site="lax",
        https_only=config.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, include_stack=not config.is_production)

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(trending.router, prefix="/api", tags=["Trending"])
    app.include_router(bookmarks.router, prefix="/api", tags=["Bookmarks"])
    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(users.router, prefix="/api", tags=["Users"])

    logger.info(f"{config.APP_NAME} {config.APP_VERSION} ready ({config.APP_ENV})")
    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "trendlens.main:create_app",
        factory=True,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
