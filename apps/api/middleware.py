"""Middleware for the ModelGov API."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = "Content-Type,Authorization"
CORS_ALLOW_METHODS = "GET,POST,PUT,DELETE,OPTIONS"


def cors_headers(origin: str) -> dict[str, str]:
    """The fixed header set attached to every response."""
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
    }


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Answers CORS preflight and decorates every response.

    Any OPTIONS request gets 200 without reaching a route, whatever its
    path. All other responses, errors included, carry the CORS headers.
    """

    def __init__(self, app: ASGIApp, allow_origin: str = "*"):
        super().__init__(app)
        self.headers = cors_headers(allow_origin)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content={"message": "CORS preflight"},
                headers=self.headers,
            )

        response = await call_next(request)
        response.headers.update(self.headers)
        return response


class ErrorBoundaryMiddleware(BaseHTTPMiddleware):
    """
    Single top-level exception boundary.

    Errors with a registered handler never get here. Anything else is
    logged with its traceback and answered with a generic 500.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unhandled error on {request.method} {request.url.path}: {e}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error"},
            )
