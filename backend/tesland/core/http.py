"""
tesland/core/http.py - Response helpers and CORS handling shared by the function endpoints.

The function endpoints are open to every origin and answer their own preflight, so the
restricted API CORS policy (`ALLOWED_ORIGINS`) must not see them.
"""
from typing import Any, Iterable

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from tesland.core.errors import CORS_HEADERS, ValidationError

FUNCTION_PATHS = ("/functions/",)


def json_response(payload: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=CORS_HEADERS)


def preflight_response() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationError("Invalid request data") from exc


class ApiCORSMiddleware(CORSMiddleware):
    """`CORSMiddleware` for the API routes; paths under `exempt_paths` pass through untouched."""

    def __init__(self, app, exempt_paths: Iterable[str] = FUNCTION_PATHS, **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_paths = tuple(exempt_paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(self.exempt_paths):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
