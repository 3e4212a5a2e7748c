"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessment.api.v1.api import api_router
from assessment.core.config import settings
from assessment.core.error_responses import ErrorMessages, detail_for, status_code_for
from assessment.core.exceptions import AssessmentError
from assessment.core.logging_config import setup_logging
from assessment.middleware import RequestLoggingMiddleware
from assessment.observability import (
    capture_error,
    init_error_tracking,
    shutdown_error_tracking,
)

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes error tracking
    - On shutdown: flushes pending error reports
    """
    init_error_tracking()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENV})")

    yield

    shutdown_error_tracking()
    logger.info("Application shutting down")


tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring application status",
    },
    {
        "name": "sessions",
        "description": "Test session lifecycle: start, answer, complete, abandon, results",
    },
    {
        "name": "stats",
        "description": "Aggregate statistics over competencies, indicators and questions",
    },
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "Backend for competency assessments.\n\n"
            "* Test sessions assembled from authored templates\n"
            "* Goal-specific scoring (overview, job fit, team fit)\n"
            "* Dashboard statistics over the competency model\n\n"
            "The caller's identity is forwarded by the gateway in the "
            f"`{settings.USER_ID_HEADER}` header."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", settings.USER_ID_HEADER, "X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(AssessmentError)
    async def assessment_exception_handler(request: Request, exc: AssessmentError):
        """
        Render domain errors as JSON with their kind and ids.

        Client errors are logged at INFO; server-side configuration faults
        are logged at ERROR and reported to error tracking.
        """
        status_code = status_code_for(exc)
        body = {"detail": detail_for(exc), **exc.to_dict()}

        if status_code >= 500:
            logger.error(
                f"Server-side assessment error on {request.method} "
                f"{request.url.path}: {exc}",
                extra={"error_kind": exc.kind},
            )
            capture_error(
                exc,
                context={
                    "path": str(request.url.path),
                    "method": request.method,
                    **exc.context,
                },
                tags={"error_type": exc.__class__.__name__},
            )
        else:
            logger.info(
                f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}",
                extra={"error_kind": exc.kind},
            )

        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id for each exception so support can trace
        it in logs. The error_id is included in the response body.
        """
        error_id = str(uuid.uuid4())

        logger.exception(f"Unhandled exception [error_id={error_id}]: {exc}")

        capture_error(
            exc,
            context={
                "path": str(request.url.path),
                "method": request.method,
                "error_id": error_id,
            },
            tags={"error_type": exc.__class__.__name__},
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": ErrorMessages.INTERNAL_ERROR,
                "error_id": error_id,
            },
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
