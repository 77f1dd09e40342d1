"""Middleware for exception handling and other cross-cutting concerns."""

import logging
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_422_UNPROCESSABLE_CONTENT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from interview_coach.core.logging import log_event, set_request_id, set_user_id
from interview_coach.core.storage import StorageError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-ID"
MAX_USER_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware for adding request ID to all logs and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, str(uuid.uuid4()))
        request.state.request_id = request_id
        set_request_id(request_id)

        log_event(
            "request.started",
            level=logging.INFO,
            component="middleware",
            operation="request_id",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            log_event(
                "request.completed",
                level=logging.INFO,
                component="middleware",
                operation="request_id",
                status_code=response.status_code,
            )
            return response
        finally:
            set_request_id(None)


class UpstreamIdentityMiddleware(BaseHTTPMiddleware):
    """Trusts the user id injected by the authenticating gateway.

    Sign-in happens upstream; this service only reads ``X-User-ID`` and puts it
    on ``request.state.user_id``. Protected routes without it get a 401.
    """

    def __init__(self, app):
        super().__init__(app)
        self.public_routes = {"/docs", "/redoc", "/openapi.json", "/health"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path == "/" or any(path.startswith(route) for route in self.public_routes):
            return await call_next(request)

        if request.method == "OPTIONS":
            return await call_next(request)

        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id or len(user_id) > MAX_USER_ID_LENGTH:
            return self._create_auth_error_response(f"Missing or invalid {USER_ID_HEADER} header")

        request.state.user_id = user_id
        set_user_id(user_id)
        try:
            return await call_next(request)
        finally:
            set_user_id(None)

    def _create_auth_error_response(self, message: str) -> JSONResponse:
        content = {"error": "AuthenticationError", "message": message, "details": None}
        return JSONResponse(status_code=HTTP_401_UNAUTHORIZED, content=content)


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """Catch-all for errors that no registered exception handler claimed."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            response = await self._handle_exception(request, exc)
            # The request id middleware never saw a response to tag
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                response.headers[REQUEST_ID_HEADER] = request_id
            return response

    async def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Exception in {request.method} {request.url}: {exc}")

        if isinstance(exc, StorageError):
            return self._create_error_response(
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
                error="StorageError",
                message="Storage operation failed",
            )
        elif hasattr(exc, "errors") and callable(exc.errors):
            return self._create_error_response(
                status_code=HTTP_422_UNPROCESSABLE_CONTENT,
                error="ValidationError",
                message="Request validation failed",
                details=str(exc),
            )
        elif isinstance(exc, ValueError):
            return self._create_error_response(
                status_code=HTTP_400_BAD_REQUEST, error="ValueError", message=str(exc) or "Invalid request"
            )
        return self._create_error_response(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            error="InternalServerError",
            message="An unexpected error occurred",
        )

    def _create_error_response(
        self, status_code: int, error: str, message: str, details: str | None = None
    ) -> JSONResponse:
        content = {"error": error, "message": message, "details": details}
        return JSONResponse(status_code=status_code, content=content)
