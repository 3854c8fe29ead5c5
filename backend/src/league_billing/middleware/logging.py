"""structlog configuration and the per-request log context for the league billing API."""
import logging
import sys
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from league_billing.config import settings

REQUEST_ID_HEADER = "X-Request-ID"

# Polled every few seconds by the orchestrator
QUIET_PATHS = ("/health", "/metrics")


def _processor_chain() -> list:
    chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.app_env == "production":
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def setup_logging() -> None:
    """Route structlog through stdlib logging at the configured level."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=_processor_chain(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id into the structlog context for every request.

    A client-supplied X-Request-ID is kept so the id in error bodies,
    server logs and the response header is the same value. Handlers
    read it back from ``request.state.request_id``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        logger = structlog.get_logger(__name__)
        quiet = request.url.path.startswith(QUIET_PATHS)

        if not quiet:
            logger.info(
                "request_started",
                client_host=request.client.host if request.client else None,
                query_params=dict(request.query_params) or None,
            )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        if quiet and response.status_code < 400:
            return response

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
