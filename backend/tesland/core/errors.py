"""
tesland/core/errors.py - Error taxonomy and FastAPI exception handlers.

Every expected failure is raised as an `AppError` subclass carrying its HTTP status.
The handlers registered by `register_exception_handlers` turn them into
`{"error": <message>}` JSON with permissive CORS headers; anything unexpected becomes
a generic 500 and the detail only goes to the server log.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("tesland.errors")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class SlotTakenError(AppError):
    status_code = 409


class UpstreamError(AppError):
    """Non-success answer from a third-party API; status_code is what we send back."""
    status_code = 502


class InternalError(AppError):
    status_code = 500


async def _app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(content=exc.to_dict(), status_code=exc.status_code, headers=CORS_HEADERS)


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(content={"error": "Internal error"}, status_code=500, headers=CORS_HEADERS)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
