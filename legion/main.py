"""
GRUDA Legion gateway application.

FastAPI application relaying chat requests to hosted AI providers, with
structured logging, error handling, and an optional static SPA mount.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from legion import __version__
from legion.api import chat_router, health_router, vibe_router
from legion.config import Settings, get_settings
from legion.core import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from legion.providers import OpenAICompatClient, ProviderTable
from legion.services.dispatcher import CompletionDispatcher

logger = get_logger(__name__)


def build_dispatcher(settings: Settings, table: ProviderTable, client: OpenAICompatClient) -> CompletionDispatcher:
    return CompletionDispatcher(
        providers=table,
        client=client,
        system_prompt=settings.system_prompt,
        timeout=settings.provider_timeout_seconds,
        default_temperature=settings.default_temperature,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting GRUDA Legion gateway",
        data={
            "host": settings.host,
            "port": settings.port,
            "environment": settings.environment,
            "cors_origins": settings.cors_origins_list,
        },
    )

    _app.state.start_time = datetime.now(UTC)

    # Tests may pre-populate the table and dispatcher
    if not hasattr(_app.state, "provider_table"):
        _app.state.provider_table = ProviderTable.from_settings(settings)

    client_created = None
    if not hasattr(_app.state, "dispatcher"):
        client_created = OpenAICompatClient(
            timeout=settings.provider_timeout_seconds,
            max_tokens=settings.max_tokens,
            referer=settings.referer_url,
            title=settings.app_title,
        )
        _app.state.dispatcher = build_dispatcher(settings, _app.state.provider_table, client_created)

    yield

    logger.info("Shutting down GRUDA Legion gateway")
    if client_created is not None:
        await client_created.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="GRUDA Legion",
        description="AI chat gateway with multi-provider fallback",
        version=__version__,
        lifespan=lifespan,
        docs_url=settings.docs_url,
        redoc_url=None,
    )

    setup_exception_handlers(app)

    # Last added = first executed
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(vibe_router)
    app.include_router(chat_router)

    # Mounted last so API routes take precedence
    if settings.static_dir:
        static_path = Path(settings.static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="static")
        else:
            logger.warning(f"STATIC_DIR does not exist, not serving static files: {static_path}")

    return app


app = create_app()
