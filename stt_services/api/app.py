"""
Transcription API FastAPI application

REST API over the fallback transcription service:
- Audio upload transcription with automatic provider fallback
- Provider availability and per-user provider preference
- Encrypted storage of user-supplied provider API keys
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import ServiceFactory, Settings
from ..core.exceptions import (
    AllProvidersFailedError,
    AuthenticationError,
    ServiceError,
    TranscriptionCancelledError,
    ValidationError,
)
from ..core.logging import configure_logging, get_logger
from ..security.auth import JWTAuth
from ..security.rate_limiter import RateLimiter
from .config import APISettings, get_settings
from .routers import health_router, keys_router, preferences_router, transcription_router

logger = get_logger(__name__)

CLIENT_CLOSED_REQUEST = 499


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def create_app(
    settings: Optional[APISettings] = None,
    factory: Optional[ServiceFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        settings: API settings, loaded from the environment if None
        factory: Service factory, built from environment settings if None

    Returns:
        Configured FastAPI app with services attached to app.state
    """
    settings = settings or get_settings()
    factory = factory or ServiceFactory(Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        logger.info(f"Starting {settings.service_name}")

        validation = factory.validate_configuration()
        for warning in validation["warnings"]:
            logger.warning(f"Configuration warning: {warning}")
        if not validation["valid"]:
            for error in validation["errors"]:
                logger.error(f"Configuration error: {error}")
            raise RuntimeError("Invalid service configuration")

        logger.info("Service initialized successfully")

        yield

        logger.info(f"Shutting down {settings.service_name}")
        await app.state.transcription_service.close()

    app = FastAPI(
        title="Speech-to-Text API",
        description=__doc__,
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.factory = factory
    app.state.transcription_service = factory.create_transcription_service()
    app.state.api_key_manager = factory.create_api_key_manager()
    app.state.jwt_auth = JWTAuth(settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_per_minute)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(transcription_router, prefix="/transcription", tags=["transcription"])
    app.include_router(
        preferences_router, prefix="/transcription/preferences", tags=["preferences"]
    )
    app.include_router(keys_router, prefix="/keys", tags=["keys"])

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "VALIDATION_ERROR")

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        return _error_response(status.HTTP_401_UNAUTHORIZED, str(exc), "AUTHENTICATION_ERROR")

    @app.exception_handler(AllProvidersFailedError)
    async def providers_failed_handler(request: Request, exc: AllProvidersFailedError):
        logger.error(f"Transcription failed on every provider: {exc}")
        return _error_response(status.HTTP_502_BAD_GATEWAY, str(exc), "ALL_PROVIDERS_FAILED")

    @app.exception_handler(TranscriptionCancelledError)
    async def cancelled_handler(request: Request, exc: TranscriptionCancelledError):
        return _error_response(CLIENT_CLOSED_REQUEST, str(exc), "CANCELLED")

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.error(f"Service error: {exc}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "SERVICE_ERROR"
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR"
        )

    return app


def main():
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        service_name=settings.service_name,
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
