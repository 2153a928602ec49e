"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware — injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware — catches domain exceptions -> structured JSON errors
    3. CORSMiddleware — handles browser-based clients
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from pet_lifecycle.api.deps import resolve_session_factory
from pet_lifecycle.domain.enums import AppLogLevel
from pet_lifecycle.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
)
from pet_lifecycle.services.event_log import DiagnosticLogService

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

_STATUS_FOR_ERROR: tuple[tuple[type[LifecycleError], int], ...] = (
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (InternalError, 500),
)


def status_code_for(exc: LifecycleError) -> int:
    for error_type, status_code in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Use client-provided ID or generate one
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        # Bind to structlog context for all log entries in this request
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions, return structured JSON and record an app log row."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except LifecycleError as exc:
            status_code = status_code_for(exc)
            content: dict[str, Any] = {"error": exc.code, "message": exc.message}
            if isinstance(exc, InvalidTransitionError):
                content["allowed"] = exc.allowed
                logger.warning(
                    "transition.invalid",
                    entity=exc.entity,
                    current=exc.current_state,
                    attempted=exc.attempted_state,
                )
            elif status_code >= 500:
                logger.error("domain.internal_error", error=exc.message, code=exc.code)
            else:
                logger.warning("domain.error", error=exc.message, code=exc.code)

            await self._record(request, exc.code, exc.message, status_code)
            return JSONResponse(status_code=status_code, content=content)
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            await self._record(request, "INTERNAL_ERROR", str(exc), 500)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )

    async def _record(self, request: Request, code: str, message: str, status_code: int) -> None:
        level = AppLogLevel.ERROR if status_code >= 500 else AppLogLevel.WARN
        await DiagnosticLogService(resolve_session_factory(request)).log(
            level,
            action=f"{request.method} {request.url.path}",
            message=message,
            user_id=_caller_id(request),
            metadata={"error": code, "status": status_code},
        )


def _caller_id(request: Request) -> uuid.UUID | None:
    raw = request.headers.get("X-User-Id")
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register all middleware on the FastAPI application.

    Order matters — middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    # CORS (runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Tighten in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handling (runs second)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID (runs last = outermost)
    app.add_middleware(RequestIDMiddleware)
