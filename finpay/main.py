"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — creates the engine, initializes schema and seed data,
     and disposes of the engine on shutdown
  2. HTTPS redirect — plain-HTTP requests are redirected when REQUIRE_HTTPS is set
  3. CORS middleware — allows the dashboard frontend origins
  4. Exception handlers — maps domain errors to HTTP responses

Running locally:
    DATABASE_URL=sqlite+aiosqlite:///./data/finpay.db uvicorn finpay.main:app --reload

Routes for the dashboard resources are mounted by the consuming application;
this bootstrap only provides the health probe.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware

from finpay.config import Settings, settings
from finpay.database import create_engine, create_session_factory, init_db
from finpay.exceptions import register_exception_handlers
from finpay.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging (here rather than in create_app, so importing this
      module leaves the root logger alone), then builds the engine from the
      app's Settings (missing DATABASE_URL is
      fatal here), creates tables that don't exist yet and guarantees the
      reference categories. In production, schema changes should still go
      through versioned migrations.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    app_settings = app.state.settings
    setup_logging(
        app_settings.LOG_LEVEL,
        app_settings.LOG_FORMAT,
        debug=app_settings.DEBUG,
    )
    engine = create_engine(app_settings)
    await init_db(engine)
    app.state.session_factory = create_session_factory(engine)
    logger.info("%s %s started", app.title, app.version)
    yield
    # --- Shutdown ---
    await engine.dispose()


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build a configured FastAPI application.

    Args:
        app_settings: Settings for this app instance; defaults to the
            process-wide settings read from the environment.
    """
    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description="Personal-finance dashboard data API",
        lifespan=lifespan,
        # Interactive docs only in development
        docs_url="/docs" if app_settings.DEBUG else None,
        redoc_url="/redoc" if app_settings.DEBUG else None,
        openapi_url="/openapi.json" if app_settings.DEBUG else None,
    )
    app.state.settings = app_settings

    # -----------------------------------------------------------------------
    # Middleware (the last one added runs first)
    # -----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if app_settings.REQUIRE_HTTPS:
        app.add_middleware(HTTPSRedirectMiddleware)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Health check
    # -----------------------------------------------------------------------

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe for load balancers and orchestrators."""
        return {"status": "ok", "version": app_settings.APP_VERSION}

    return app


app = create_app()
