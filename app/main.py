"""GiftDrive Cart API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map GiftDriveError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and Rye client initialized on startup, closed on shutdown,
      via the lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's
      import fan-out small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import cart, health, needs, orders, webhooks
from app.config import get_settings
from app.infrastructure.database import close_db, init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.rye_client import close_rye_client, init_rye_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_rye_client(
        endpoint=settings.rye_graphql_endpoint,
        secret_key=settings.rye_secret_api_key,
        default_shopper_ip=settings.rye_shopper_ip,
        max_retries=settings.rye_max_retries,
        base_delay_ms=settings.rye_base_delay_ms,
        max_delay_ms=settings.rye_max_delay_ms,
        timeout_seconds=settings.rye_timeout_seconds,
    )
    logger.info("GiftDrive cart API started")
    yield
    logger.info("GiftDrive cart API shutting down")
    await close_rye_client()
    await close_db()


app = FastAPI(
    title="GiftDrive Cart API", version="1.0.0", lifespan=lifespan,
)

# CORS from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(needs.router)
app.include_router(webhooks.router)

register_error_handlers(app)
