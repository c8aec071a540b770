import json
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from src.infra.config.settings import Settings, get_settings
from src.infra.database import DatabaseManager
from src.core.logger.logger import logger
from src.api.router import health, auth, user
from src.api.middleware.security.rate_limiter import RateLimitMiddleware
from src.api.middleware.logging.request_logging import RequestLoggingMiddleware
from src.core.exceptions.handler import ServiceError, GlobalErrorHandler

def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
WinWin community API - registration, onboarding, profiles and the multi-level referral program.

## Referrals
- A referral token may be a user id, an external auth id, a wallet address or an email
- Each (referrer, referred) pair is recorded once
- Rewards are credited to up to three levels of referrers
        """,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # One database manager per process, shared by reference
    app.state.db_manager = db_manager or DatabaseManager(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
        max_age=600,  # 10 minutes
    )

    # Rate limiting middleware
    app.add_middleware(RateLimitMiddleware, settings=settings)

    # Request logging middleware (added last so it wraps everything else)
    app.add_middleware(RequestLoggingMiddleware)

    # Add centralized error handlers
    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    # Include routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(user.router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event():
        logger.info(json.dumps({
            "message": "Starting API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION
        }))

        # Connection failures are retried lazily by the session dependency
        try:
            await app.state.db_manager.connect()
        except Exception as e:
            logger.error(f"Failed to connect to database on startup: {str(e)}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.db_manager.close()
        logger.info(json.dumps({
            "message": "Shutting down API",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION
        }))

    return app
