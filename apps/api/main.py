"""Statement Ingestion API: FastAPI entry point.

Serves bank statement imports and previews under /api/v1. Imports that
should not block a request go through the Celery ``ingestion`` queue.
"""

import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.core.config import settings
from apps.api.core.errors import register_error_handlers
from apps.api.core.logging import setup_logging_for_environment
from apps.api.domains.ingestion.router import router as ingestion_router
from apps.api.routers import health
from packages.statement_ingestion import __version__

logger = structlog.get_logger()

DEFAULT_ORIGINS = ["http://localhost:3000"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup/shutdown hooks."""
    if settings is not None:
        setup_logging_for_environment(settings.ENVIRONMENT, settings.log_level)
    else:
        setup_logging_for_environment("development")
        logger.warning("settings_incomplete", detail="Supabase credentials are not set")
    logger.info("app_starting", version=__version__)
    yield
    logger.info("app_stopping")


app = FastAPI(
    title="Statement Ingestion API",
    description="Imports bank statement CSV exports into finance_transactions.",
    version=__version__,
    lifespan=lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins if settings is not None else DEFAULT_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingestion_router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")
