"""ASGI entry point for the league billing API: ``uvicorn league_billing.main:app``."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import stripe
import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError

from league_billing.api.v1 import admin_tiers, cron, health, leagues, tiers
from league_billing.api.webhooks import stripe as stripe_webhooks
from league_billing.cache import cache
from league_billing.config import settings
from league_billing.middleware.logging import LoggingMiddleware, new_request_id, setup_logging
from league_billing.middleware.metrics import MetricsMiddleware
from league_billing.schemas.error import (
    VALIDATION_CODES,
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    error_response,
)

setup_logging()
logger = structlog.get_logger(__name__)

# Stripe error code -> message safe to show a host at checkout
GATEWAY_MESSAGES = {
    "card_declined": "Payment method declined. Please try a different payment method.",
    "expired_card": "Payment method has expired. Please use a different payment method.",
    "processing_error": "Payment processing error. Please try again.",
    "rate_limit": "Too many payment attempts. Please try again later.",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or new_request_id()


def _expose_internals() -> bool:
    return settings.app_env != "production"


async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        ErrorDetail(
            code=VALIDATION_CODES.get(err["type"], ErrorCode.VALIDATION_ERROR),
            message=err["msg"],
            field=".".join(str(part) for part in err["loc"]),
            value=jsonable_encoder(err.get("input")),
        )
        for err in exc.errors()
    ]
    logger.info("request_validation_failed", error_count=len(details))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details,
        _request_id(request),
        ErrorCode.VALIDATION_ERROR,
    )


async def on_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", error_type=type(exc).__name__, error=str(exc))
    message = str(exc) if _expose_internals() else "Database temporarily unavailable"
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "DatabaseError",
        "A database error occurred",
        [ErrorDetail(code=ErrorCode.DATABASE_ERROR, message=message)],
        _request_id(request),
        ErrorCode.DATABASE_ERROR,
        headers={"Retry-After": "30"},
    )


async def on_gateway_error(request: Request, exc: stripe.StripeError) -> JSONResponse:
    code = getattr(exc, "code", None)
    logger.error("payment_gateway_error", stripe_code=code, error=str(exc))
    user_message = GATEWAY_MESSAGES.get(code, "Payment gateway error occurred")
    return error_response(
        status.HTTP_502_BAD_GATEWAY,
        "PaymentGatewayError",
        user_message,
        [ErrorDetail(code=ErrorCode.STRIPE_API_ERROR, message=str(exc) if _expose_internals() else user_message)],
        _request_id(request),
        ErrorCode.STRIPE_API_ERROR,
    )


async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", exception_type=type(exc).__name__)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
        [ErrorDetail(code=ErrorCode.INTERNAL_ERROR, message=str(exc) if settings.debug else "Internal server error")],
        _request_id(request),
        ErrorCode.INTERNAL_ERROR,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("application_starting", env=settings.app_env, currency=settings.default_currency)
    yield
    await cache.close()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title="League Tier Billing",
        description="Tier pricing, price previews and paid league checkout",
        version=health.VERSION,
        lifespan=lifespan,
        responses={code: {"model": ErrorResponse} for code in (422, 500, 502, 503)},
    )

    # Added last runs first: logging binds the request id before metrics and CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(MetricsMiddleware)
    application.add_middleware(LoggingMiddleware)

    application.add_exception_handler(RequestValidationError, on_validation_error)
    application.add_exception_handler(SQLAlchemyError, on_database_error)
    application.add_exception_handler(stripe.StripeError, on_gateway_error)
    application.add_exception_handler(Exception, on_unhandled_error)

    application.mount("/metrics", make_asgi_app())

    @application.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {"service": "League Tier Billing", "version": health.VERSION, "docs": "/docs"}

    application.include_router(health.router, tags=["Health"])
    # tiers before leagues: /v1/leagues/tiers must win over /v1/leagues/{league_id}
    application.include_router(tiers.router, prefix="/v1")
    application.include_router(leagues.router, prefix="/v1")
    application.include_router(admin_tiers.router, prefix="/v1")
    application.include_router(cron.router, prefix="/v1")
    application.include_router(stripe_webhooks.router)

    return application


app = create_app()
