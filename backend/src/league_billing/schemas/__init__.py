"""Pydantic schemas for API request/response validation."""

from league_billing.schemas.error import (
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
)
from league_billing.schemas.league import (
    CheckoutResponse,
    CleanupResult,
    League,
    LeagueCreate,
    Payment,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from league_billing.schemas.pricing import (
    PriceBreakdown,
    PriceCalculationInput,
    PricePreviewFailure,
    PricePreviewRequest,
    PricePreviewResponse,
    TierValidationResult,
)
from league_billing.schemas.snapshot import (
    SnapshotLeagueConfig,
    SnapshotPricing,
    TierSnapshot,
)
from league_billing.schemas.tier import (
    ActiveTierList,
    DynamicPricing,
    FixedPricing,
    Money,
    PricingConfig,
    PricingDetail,
    TierAdmin,
    TierAdminList,
    TierConfig,
    TierCreate,
    TierUpdate,
)

__all__ = [
    # Error
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    # League
    "CheckoutResponse",
    "CleanupResult",
    "League",
    "LeagueCreate",
    "Payment",
    "PaymentVerifyRequest",
    "PaymentVerifyResponse",
    # Pricing
    "PriceBreakdown",
    "PriceCalculationInput",
    "PricePreviewFailure",
    "PricePreviewRequest",
    "PricePreviewResponse",
    "TierValidationResult",
    # Snapshot
    "SnapshotLeagueConfig",
    "SnapshotPricing",
    "TierSnapshot",
    # Tier
    "ActiveTierList",
    "DynamicPricing",
    "FixedPricing",
    "Money",
    "PricingConfig",
    "PricingDetail",
    "TierAdmin",
    "TierAdminList",
    "TierConfig",
    "TierCreate",
    "TierUpdate",
]
