"""Exception handlers: consistent JSON error bodies for domain and HTTP errors."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tabanok.gamification.exceptions import (
    GamificationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    RewardValidationError,
)

logger = structlog.get_logger()

# Checked in order; first match wins.
STATUS_BY_ERROR: list[tuple[type[GamificationError], int]] = [
    (NotFoundError, 404),
    (InvalidStateError, 400),
    (RewardValidationError, 422),
    (PersistenceError, 500),
]


def status_for(exc: GamificationError) -> int:
    for error_cls, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 500


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(GamificationError)
    async def gamification_exception_handler(request: Request, exc: GamificationError) -> JSONResponse:
        status_code = status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "gamification_error",
            path=request.url.path,
            method=request.method,
            code=exc.error_code,
            error=exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.error_code},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
