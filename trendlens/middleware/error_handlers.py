"""Exception handlers producing {"message", "code"} error bodies."""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from trendlens.middleware.error_codes import ErrorCode, get_error_code
from trendlens.services.exceptions import TrendLensError

logger = logging.getLogger(__name__)


def _error_body(message: str, code: ErrorCode) -> dict:
    return {"message": message, "code": code.value}


def register_exception_handlers(app: FastAPI, *, include_stack: bool) -> None:
    """
    Attach the application's exception handlers

    Args:
        app: Application to configure
        include_stack: Add a "stack" field to unhandled-error bodies (never in production)
    """

    @app.exception_handler(TrendLensError)
    async def handle_domain_error(request: Request, exc: TrendLensError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request parameters", ErrorCode.VALIDATION_ERROR),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), get_error_code(exc.status_code)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        body = _error_body("Internal Server Error", ErrorCode.INTERNAL_ERROR)
        if include_stack:
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=500, content=body)
