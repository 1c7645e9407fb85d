"""
Main FastAPI application entry point

This module is the composition root: settings and the PaymobService are
built once here and handed to routes through app.state.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rentat.api.routes import health, payments
from rentat.core.config import Settings, get_settings
from rentat.core.logging_config import LoggingConfig
from rentat.core.middleware import LoggingContextMiddleware
from rentat.services.paymob_service import PaymobService

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, paymob_service: Optional[PaymobService] = None) -> FastAPI:
    """Build the application and its services"""
    settings = settings or get_settings()
    paymob_service = paymob_service or PaymobService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")
        yield
        logger.info(f"Shutting down {settings.app_name}...")
        await app.state.paymob_service.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Rentat payments backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.paymob_service = paymob_service

    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log unhandled errors and return them as JSON"""
        if isinstance(exc, FastAPIHTTPException):
            raise exc

        logger.error(
            "Unhandled exception",
            exc_info=True,
            extra={
                "error": str(exc),
                "error_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__}
        )

    app.include_router(health.router)
    app.include_router(payments.router)
    return app


app = create_app()

