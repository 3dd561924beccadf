"""
FastAPI application entry point.
Configures middleware, routes, error handling and application lifecycle events.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import Settings, get_settings
from src.core.exceptions import AppException
from src.schemas.common import ErrorResponse
from src.core.logging_service import (
    setup_structured_logging,
    RequestLoggingMiddleware,
    log_system_event,
)
from src.db.database import get_session_factory, init_db
from src.db.repositories.base import TradeRepository, UserRepository
from src.db.repositories.memory import InMemoryTradeRepository, InMemoryUserRepository
from src.db.repositories.sql import SqlTradeRepository, SqlUserRepository
from src.db.seed import seed_demo_data
from src.api import (
    auth_router,
    health_router,
    positions_router,
    quotes_router,
    strategies_router,
    trades_router,
    users_router,
)
from src.services.quote_service import AlphaVantageQuoteProvider, QuoteProvider


logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    # Structured JSON logging for production, plain text when debugging
    if not settings.debug:
        setup_structured_logging(level="INFO", json_output=True)
    else:
        setup_structured_logging(level="DEBUG", json_output=False)


def build_repositories(settings: Settings) -> tuple[TradeRepository, UserRepository]:
    """
    Creates the repositories for the configured storage backend.
    """
    if settings.storage_backend == "sql":
        session_factory = get_session_factory()
        return SqlTradeRepository(session_factory), SqlUserRepository(session_factory)
    return InMemoryTradeRepository(), InMemoryUserRepository()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    Creates tables for the SQL backend, loads demo data and closes the
    quote provider's HTTP client on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} ({settings.storage_backend} storage)")

    if app.state.owns_storage and settings.storage_backend == "sql":
        await init_db()

    if settings.seed_demo_data:
        await seed_demo_data(app.state.trade_repository, app.state.user_repository)

    log_system_event(
        "startup",
        component="api",
        environment="debug" if settings.debug else "production",
        storage_backend=settings.storage_backend,
    )

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await app.state.quote_provider.close()
    log_system_event("shutdown", component="api", reason="normal")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Translates typed application errors into their HTTP status codes.
    """
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    body = ErrorResponse(error=type(exc).__name__, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


def create_app(
    settings: Settings | None = None,
    trade_repository: TradeRepository | None = None,
    user_repository: UserRepository | None = None,
    quote_provider: QuoteProvider | None = None,
) -> FastAPI:
    """
    Builds the application.

    Collaborators not passed in are created from settings: repositories
    for the configured storage backend and an Alpha Vantage quote provider.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Options trade journal with realized and missed P&L tracking",
        version="1.0.0",
        lifespan=lifespan,
        # Disable trailing slash redirects - they cause CORS preflight failures
        redirect_slashes=False,
    )

    owns_storage = trade_repository is None and user_repository is None
    if owns_storage:
        trade_repository, user_repository = build_repositories(settings)
    elif trade_repository is None or user_repository is None:
        raise ValueError("trade_repository and user_repository must be provided together")

    app.state.settings = settings
    app.state.owns_storage = owns_storage
    app.state.trade_repository = trade_repository
    app.state.user_repository = user_repository
    app.state.quote_provider = quote_provider or AlphaVantageQuoteProvider.from_settings(settings)

    app.add_exception_handler(AppException, app_exception_handler)

    # Middleware order matters - last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(auth_router, prefix="/api")
    app.include_router(trades_router, prefix="/api")
    app.include_router(positions_router, prefix="/api")
    app.include_router(quotes_router, prefix="/api")
    app.include_router(strategies_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(health_router, prefix="/api")

    return app


app = create_app()
