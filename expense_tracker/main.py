import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings, Settings
from .core.errors import register_error_handlers
from .core.logging import init_logging, request_context_middleware
from .core.security import security_headers_middleware
from .db.dal import ExpenseRepository
from .db.migrate import apply_migrations
from .routers import expenses, health
from .services.expense_service import ExpenseService

logger = logging.getLogger("expense_tracker")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "application startup",
        extra={"environment": settings.environment, "db_path": str(settings.db_path)},
    )
    yield
    logger.info("application shutdown")


def create_app(settings_override: Settings | None = None) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    """
    settings = settings_override or get_settings()
    if settings.db_path is None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(settings.log_level)

    # Ensure database schema (idempotent) so test-injected fresh DBs have tables
    try:
        apply_migrations(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        # Failing to init DB is fatal; re-raise after logging
        logger.exception("failed to apply migrations on startup")
        raise

    app = FastAPI(
        title=settings.app_name,
        debug=False,
        version=settings.version,
        lifespan=lifespan,
    )

    # One repository/service pair per process, shared by all requests
    repository = ExpenseRepository(settings.db_path)  # type: ignore[arg-type]
    app.state.settings = settings
    app.state.expense_service = ExpenseService(repository, settings)

    # Middleware (last added runs first)
    app.middleware("http")(request_context_middleware)
    app.middleware("http")(security_headers_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Error handlers
    register_error_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(expenses.router)

    @app.get("/")
    async def root():
        return {"message": "Welcome to Expense Tracker API", "version": settings.version}

    return app
