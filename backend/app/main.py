"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.error_responses import ErrorMessages
from app.core.exceptions import SessionError
from app.core.logging_config import setup_logging
from app.middleware import RequestLoggingMiddleware

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    Logs startup and disposes of the database connection pool on shutdown.
    """
    logger.info(
        f"{settings.APP_NAME} {settings.APP_VERSION} starting (env={settings.ENV})"
    )

    yield

    from app.models import async_engine

    await async_engine.dispose()
    logger.info("Application shutting down - database connections closed")


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    tags_metadata = [
        {
            "name": "health",
            "description": "Service liveness checks.",
        },
        {
            "name": "sessions",
            "description": "Start assessment sessions, fetch the current question, "
            "submit answers in order, and read results and session history.",
        },
    ]

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Timed assessment sessions that serve questions one at a time "
        "in a fixed order, score multiple-choice answers immediately and "
        "descriptive answers through an external evaluation service.",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        RequestLoggingMiddleware,
        skip_paths=(f"{settings.API_PREFIX}/health", f"{settings.API_PREFIX}/ping"),
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.exception_handler(SessionError)
    async def session_error_handler(request: Request, exc: SessionError):
        """
        Map session engine errors to their status code and message.
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handle HTTP exceptions (unknown routes, wrong methods).
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors.
        """
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Request validation failed.", "details": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        The traceback is logged under an error id that is also returned to
        the client; no other detail leaves the server.
        """
        error_id = str(uuid.uuid4())
        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={
                "error_id": error_id,
                "method": request.method,
                "path": str(request.url.path),
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": ErrorMessages.INTERNAL_SERVER_ERROR,
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
        "docs": f"{settings.API_PREFIX}/docs",
    }
