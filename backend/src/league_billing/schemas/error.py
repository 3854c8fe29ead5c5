"""Error bodies returned by the league billing API."""
from datetime import datetime
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str
    field: str | None = Field(default=None, description="Dotted location of the offending input")
    value: Any | None = None


class ErrorResponse(BaseModel):
    """Body of every 422, 5xx and gateway error, carrying the request id for support."""

    error: str = Field(..., description="Error type, e.g. ValidationError")
    message: str
    details: list[ErrorDetail] | None = None
    remediation: str | None = Field(default=None, description="What the caller can do about it")
    request_id: str | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "PaymentGatewayError",
                "message": "Payment method declined. Please try a different payment method.",
                "details": [{"code": "stripe_api_error", "message": "card_declined"}],
                "remediation": "Payment processing is temporarily unavailable. Please try again later.",
                "request_id": "req_1a2b3c4d5e6f",
                "timestamp": "2026-10-18T10:30:00Z",
            }
        }
    )


class ErrorCode:
    # Request validation (422)
    INVALID_UUID = "invalid_uuid"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    INVALID_AMOUNT = "invalid_amount"
    VALIDATION_ERROR = "validation_error"

    # Business logic errors (400)
    TIER_LIMIT_EXCEEDED = "tier_limit_exceeded"
    INVALID_PRICING_CONFIG = "invalid_pricing_config"
    PAYMENT_VERIFICATION_FAILED = "payment_verification_failed"

    # Dependencies (502, 503)
    STRIPE_API_ERROR = "stripe_api_error"
    DATABASE_ERROR = "database_error"

    # Internal (500)
    RECONCILIATION_REQUIRED = "reconciliation_required"
    INTERNAL_ERROR = "internal_error"


# pydantic error type -> ErrorCode
VALIDATION_CODES = {
    "uuid_parsing": ErrorCode.INVALID_UUID,
    "uuid_type": ErrorCode.INVALID_UUID,
    "enum": ErrorCode.INVALID_ENUM_VALUE,
    "literal_error": ErrorCode.INVALID_ENUM_VALUE,
    "missing": ErrorCode.MISSING_REQUIRED_FIELD,
    "decimal_parsing": ErrorCode.INVALID_AMOUNT,
}

REMEDIATION_HINTS = {
    ErrorCode.TIER_LIMIT_EXCEEDED: "Shorten the league, reduce participants, or choose a tier with higher limits",
    ErrorCode.INVALID_PRICING_CONFIG: "Fixed tiers need fixed_price > 0; dynamic tiers need at least one rate > 0",
    ErrorCode.PAYMENT_VERIFICATION_FAILED: "The payment could not be confirmed. Please retry the checkout.",
    ErrorCode.RECONCILIATION_REQUIRED: "Your payment was received. Please contact support with the request ID.",
    ErrorCode.STRIPE_API_ERROR: "Payment processing is temporarily unavailable. Please try again later.",
    ErrorCode.DATABASE_ERROR: "Database temporarily unavailable. Please try again in a few moments.",
    ErrorCode.VALIDATION_ERROR: "Check the API documentation for correct request format at /docs",
    ErrorCode.INTERNAL_ERROR: "Please contact support with the request ID",
}


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: list[ErrorDetail],
    request_id: str,
    remediation_code: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        details=details,
        remediation=REMEDIATION_HINTS.get(remediation_code),
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)
