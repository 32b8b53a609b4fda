"""FastAPI server for Draftwise writing suggestions"""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from draftwise.api.routes.health import router as health_router
from draftwise.api.routes.progress import router as progress_router
from draftwise.api.routes.rubrics import router as rubrics_router
from draftwise.api.routes.suggestions import router as suggestions_router
from draftwise.api.routes.tags import router as tags_router
from draftwise.config import API_HOST, API_PORT, APP_VERSION, CORS_ORIGINS, is_development
from draftwise.errors import DraftwiseError, RateLimited, Unauthenticated
from draftwise.infrastructure.database import get_db_connection, init_database
from draftwise.infrastructure.database_schema import validate_schema
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event
from draftwise.utils.error_sanitizer import get_safe_error_detail, sanitize_error_message

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Create tables and validate the schema before serving (fail fast)."""
    try:
        init_database()
        with get_db_connection() as conn:
            validate_schema(conn)
    except (sqlite3.OperationalError, ValueError) as e:
        logger.critical("Database initialization failed: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e

    log_event("api.startup", service="draftwise", version=APP_VERSION)
    yield


app = FastAPI(title="Draftwise API", version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(DraftwiseError)
async def draftwise_error_handler(request: Request, exc: DraftwiseError) -> JSONResponse:
    counter(f"api.errors.{exc.code}")
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after)
    if isinstance(exc, Unauthenticated):
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": sanitize_error_message(exc.message, exc.status_code), "code": exc.code},
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report which fields were invalid without echoing validation internals."""
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "code": "invalid-argument",
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    counter("api.errors.internal")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": get_safe_error_detail(exc), "code": "internal"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.include_router(health_router)
app.include_router(suggestions_router)
app.include_router(tags_router)
app.include_router(rubrics_router)
app.include_router(progress_router)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Draftwise API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "analyze": "/api/suggestions/analyze",
            "tags": "/api/documents/{document_id}/tags",
            "rubrics": "/api/rubrics/parse",
            "health": "/health",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run("draftwise.api.app:app", host=API_HOST, port=API_PORT, reload=is_development())


if __name__ == "__main__":
    main()
