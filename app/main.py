"""
ExamPortal Backend - Multi-college online examination platform
Production-ready FastAPI application
"""

import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from app.api.v1.api import api_router
from app.core.cache import cache_manager
from app.core.config import settings
from app.core.database import get_db_session, init_db
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.middleware import (
    LoggingMiddleware,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    add_rate_limiting,
    setup_cors,
)
from app.services.auth import AuthService
from app.services.payments import build_gateway
from app.services.storage import build_storage

logger = logging.getLogger(__name__)

# Initialize Sentry if DSN is provided
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=1.0 if settings.DEBUG else 0.1,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db()
    with get_db_session() as db:
        AuthService.ensure_admin(db)

    # External clients are built once; a misconfigured storage backend fails startup
    app.state.storage = build_storage()
    app.state.payments = build_gateway()

    await cache_manager.connect()

    yield

    # Shutdown
    logger.info("Shutting down application")
    if app.state.payments is not None:
        app.state.payments.close()
    await cache_manager.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)
app.state.storage = None
app.state.payments = None

# Middleware, innermost first
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
setup_cors(app)
add_rate_limiting(app)

register_exception_handlers(app)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "description": settings.APP_DESCRIPTION,
        "docs": "/docs",
        "health": f"{settings.API_PREFIX}/health",
    }


# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
