import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import close_email_client, get_settings, get_store
from src.api.middleware import RequestIDMiddleware
from src.api.routes import subscriptions
from src.core.telemetry import init_logging
from src.shell.http import health

logger = logging.getLogger("src.api")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Settings are read in the lifespan handler, not here, so importing this
    module never touches configuration.yaml.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        settings = get_settings()
        init_logging("newsletter", level=settings.logging.level, json_logs=settings.logging.json_logs)

        if settings.database.migrate_on_startup:
            applied = SQLiteMigrator(
                settings.database.path, settings.database.migrations_dir
            ).run_migrations()
            logger.info("Migrations applied on startup", extra={"migrations": applied})

        app.state.store_ping = get_store(settings).ping
        logger.info(
            "Listening",
            extra={"host": settings.application.host, "port": settings.application.port},
        )

        yield

        app.state.store_ping = None
        close_email_client()

    app = FastAPI(
        title="Newsletter API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> Response:
        # Missing or malformed form/query fields are client errors, reported as 400.
        logger.info(
            "Rejected malformed request",
            extra={"path": request.url.path, "errors": str(exc.errors())},
        )
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    # --- Routers ---
    app.include_router(subscriptions.router, tags=["Subscriptions"])
    app.include_router(health.router)

    return app


_app: FastAPI | None = None


def get_app() -> FastAPI:
    """Process-wide application instance."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


app = get_app()
