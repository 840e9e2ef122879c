"""Global error handlers mapping the application error taxonomy onto JSON responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from snapshare.config import settings
from snapshare.exceptions import AppError, StorageError

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong"


def error_payload(exc: Exception, message: str, status_code: int) -> dict:
    """Body shared by every error response"""
    if settings.is_production and (status_code >= 500 or isinstance(exc, StorageError)):
        return {"success": False, "message": GENERIC_MESSAGE}

    payload = {"success": False, "message": message}
    if not settings.is_production:
        payload["error_type"] = type(exc).__name__
    return payload


def _flatten_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts) or "Invalid input"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc, exc.message, exc.status_code),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_payload(exc, _flatten_validation_errors(exc), 400),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc, str(exc.detail), exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=error_payload(exc, str(exc) or GENERIC_MESSAGE, 500),
        )
