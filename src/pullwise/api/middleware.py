"""Middleware — CORS, request logging, error handling."""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pullwise.core.exceptions import (
    ConfigurationError,
    InvalidRepositoryNameError,
    InvalidTransitionError,
    LinearError,
    LLMError,
    NotFoundError,
    PreconditionFailedError,
    PullwiseError,
    UnknownProviderError,
    UpstreamError,
    WebhookSignatureError,
)
from pullwise.core.logging import get_logger

logger = get_logger(__name__)


def setup_middleware(app: FastAPI) -> None:
    """Attach all middleware to the FastAPI app."""

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        """Log every request with timing and a correlation ID."""
        request_id = str(uuid.uuid4())[:8]
        start = time.perf_counter_ns()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)

            duration_ms = (time.perf_counter_ns() - start) // 1_000_000
            logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code,
                duration_ms=duration_ms,
            )
        response.headers["X-Request-ID"] = request_id
        return response


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": str(exc)})


def setup_exception_handlers(app: FastAPI) -> None:
    """Register domain exception → HTTP response mappings."""

    @app.exception_handler(WebhookSignatureError)
    async def handle_signature(request: Request, exc: WebhookSignatureError):
        return _error(401, "Invalid signature", exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "Not Found", exc)

    @app.exception_handler(PreconditionFailedError)
    async def handle_precondition(request: Request, exc: PreconditionFailedError):
        return _error(412, "Precondition Failed", exc)

    @app.exception_handler(InvalidRepositoryNameError)
    async def handle_repo_name(request: Request, exc: InvalidRepositoryNameError):
        return _error(400, "Bad Request", exc)

    @app.exception_handler(UnknownProviderError)
    async def handle_unknown_provider(request: Request, exc: UnknownProviderError):
        return _error(400, "Unknown Provider", exc)

    @app.exception_handler(ConfigurationError)
    async def handle_configuration(request: Request, exc: ConfigurationError):
        return _error(503, "AI Provider Unavailable", exc)

    @app.exception_handler(InvalidTransitionError)
    async def handle_transition(request: Request, exc: InvalidTransitionError):
        return _error(409, "Conflict", exc)

    @app.exception_handler(UpstreamError)
    async def handle_upstream(request: Request, exc: UpstreamError):
        return _error(502, "GitHub Error", exc)

    @app.exception_handler(LinearError)
    async def handle_linear(request: Request, exc: LinearError):
        return _error(502, "Linear Error", exc)

    @app.exception_handler(LLMError)
    async def handle_llm(request: Request, exc: LLMError):
        return _error(502, "LLM Error", exc)

    @app.exception_handler(PullwiseError)
    async def handle_pullwise(request: Request, exc: PullwiseError):
        logger.error("unhandled_domain_error", error=str(exc), error_type=type(exc).__name__)
        return _error(500, "Internal Error", exc)
