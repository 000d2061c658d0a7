"""
Main FastAPI application for the pediatric BCI game backend.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bci_backend.api.routes import eeg, health, sessions
from bci_backend.core.config import Settings, settings as default_settings
from bci_backend.core.exceptions import BCIError
from bci_backend.core.logging import get_logger
from bci_backend.data.database import init_db
from bci_backend.pipeline.adaptive_session import AdaptiveSessionController
from bci_backend.pipeline.trial_pipeline import TrialPipeline

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[TrialPipeline] = None,
    create_tables: bool = True
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings (default: environment settings)
        pipeline: Pre-built trial pipeline; built from settings at startup
            when omitted
        create_tables: Create database tables on startup
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Application lifespan handler.
        Runs on startup and shutdown.
        """
        logger.info(
            "application_starting",
            app_name=settings.app_name,
            version=settings.app_version,
            env=settings.env,
            classifier_mode=settings.classifier_mode
        )

        if create_tables:
            init_db()

        app.state.pipeline = pipeline or TrialPipeline.from_settings(settings)
        app.state.session_controller = AdaptiveSessionController(config=settings)

        yield

        logger.info(
            "application_shutting_down",
            **app.state.pipeline.get_metrics()
        )

    app = FastAPI(
        title="Pediatric BCI Game API",
        description="Simulated P300 brain-computer interface with adaptive difficulty",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BCIError)
    async def bci_error_handler(request: Request, exc: BCIError) -> JSONResponse:
        """Handle custom BCI errors."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "bci_error",
            error_code=exc.code,
            message=exc.message,
            path=request.url.path
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message
                }
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "unexpected_error",
            error_type=type(exc).__name__,
            path=request.url.path
        )

        message = str(exc) if settings.is_development else "An unexpected error occurred"
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": message
                }
            }
        )

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(eeg.router, prefix="/api/v1/eeg", tags=["eeg"])
    app.include_router(sessions.router, prefix="/api/v1", tags=["sessions"])

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "app": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "environment": settings.env,
            "docs": "/docs",
            "api": {
                "health": "/api/v1/health",
                "eeg": "/api/v1/eeg",
                "sessions": "/api/v1/sessions"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bci_backend.api.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.is_development,
        log_level=default_settings.log_level.lower()
    )
