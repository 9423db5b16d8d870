"""
Fill-A-Hole Civic API - FastAPI Application Entry Point

Citizens report civic issues with geotagged photos; reports are scored for
authenticity, shadow-banned when flagged, and pushed to nearby residents
when urgent or verified.

DESIGN PRINCIPLES:
- Trust decision is made once, at submission, from metadata + AI cross-check
- AI is advisory and never blocks a submission
- FLAGGED reports are visible only to their author on every read path
- Notification fan-out runs in the background and never fails a submission
"""

import logging
import sys
import traceback
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fillahole.core.context import AppContext, build_context
from fillahole.core.settings import Settings, settings
from fillahole.routes import health, jobs, map, media, notifications, reports
from fillahole.services.issue_submission import SubmissionValidationError
from fillahole.services.notification_service import NotificationNotFoundError
from fillahole.services.report_service import ReportNotFoundError

logger = logging.getLogger(__name__)


def configure_logging(app_settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(app_settings: Settings, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API. A prepared context (tests, scripts) is used as-is;
    otherwise one is built from settings at startup.
    """
    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description="Geotagged civic issue reporting with trust scoring and nearby alerts",
        debug=app_settings.DEBUG,
    )
    app.state.settings = app_settings
    app.state.context = context

    @app.exception_handler(SubmissionValidationError)
    async def submission_validation_handler(request: Request, exc: SubmissionValidationError):
        logger.info(f"Rejected submission on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message, "field": exc.field},
        )

    @app.exception_handler(ReportNotFoundError)
    async def report_not_found_handler(request: Request, exc: ReportNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Report not found"})

    @app.exception_handler(NotificationNotFoundError)
    async def notification_not_found_handler(request: Request, exc: NotificationNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Notification not found"})

    # Global exception handler to catch ALL exceptions
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions and log them with full traceback."""
        sys.stderr.write("=" * 80 + "\n")
        sys.stderr.write("🔥 GLOBAL EXCEPTION HANDLER CAUGHT EXCEPTION\n")
        sys.stderr.write(f"Path: {request.url.path}\n")
        sys.stderr.write(f"Method: {request.method}\n")
        sys.stderr.write("=" * 80 + "\n")
        sys.stderr.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        sys.stderr.write("=" * 80 + "\n")
        sys.stderr.flush()

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": f"Internal server error: {str(exc)}"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors()},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting {app_settings.APP_NAME} v{app_settings.APP_VERSION}")
        if app.state.context is not None:
            return
        try:
            app.state.context = build_context(app_settings)
        except Exception as e:
            logger.error(f"Backend initialization failed: {e}")
            logger.error("The app will start but database operations will return 503.")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {app_settings.APP_NAME}")
        if app.state.context is not None:
            app.state.context.close()

    app.include_router(health.router)
    app.include_router(reports.router)
    app.include_router(media.router)
    app.include_router(map.router)
    app.include_router(notifications.router)
    app.include_router(jobs.router)

    @app.get("/")
    async def root():
        return {
            "service": app_settings.APP_NAME,
            "version": app_settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    return app


configure_logging(settings)
app = create_app(settings)
