"""Domain exceptions raised by the checkout and tier admin services."""


class LeagueBillingError(Exception):
    """Base class for league billing errors."""


class TierValidationError(LeagueBillingError):
    """League configuration rejected by tier validation."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("; ".join(self.errors) or "Tier validation failed")


class TierNotFoundError(LeagueBillingError):
    """Tier does not exist."""


class TierInUseError(LeagueBillingError):
    """Tier is referenced by leagues and cannot be deleted."""


class InvalidPricingConfigError(LeagueBillingError, ValueError):
    """Pricing configuration is not economically meaningful."""


class TierNameConflictError(LeagueBillingError):
    """Another tier already uses the machine name."""


class LeagueNotFoundError(LeagueBillingError):
    """League does not exist or is not visible to the caller."""


class PaymentNotFoundError(LeagueBillingError):
    """No payment recorded for the gateway order."""


class PaymentVerificationError(LeagueBillingError):
    """Gateway did not confirm the payment."""


class InvalidStateTransitionError(LeagueBillingError):
    """League or payment is not in a state that allows the operation."""


class ReconciliationRequiredError(LeagueBillingError):
    """Payment captured but the league could not be activated; needs manual follow-up."""
