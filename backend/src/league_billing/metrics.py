"""Business metrics for Prometheus monitoring."""
from prometheus_client import Counter

# Pricing metrics
price_calculations_total = Counter(
    "price_calculations_total",
    "Total tier price calculations",
    labelnames=["pricing_type", "outcome"],  # outcome: priced, rejected
)

tier_validation_failures_total = Counter(
    "tier_validation_failures_total",
    "Total league configurations rejected by tier validation",
)

tier_snapshots_total = Counter(
    "tier_snapshots_total",
    "Total tier snapshots built",
    labelnames=["outcome"],  # created, failed
)

# Checkout metrics
league_checkouts_total = Counter(
    "league_checkouts_total",
    "Total league checkouts started",
    labelnames=["currency"],
)

league_payments_total = Counter(
    "league_payments_total",
    "League payment outcomes",
    labelnames=["status"],  # completed, failed, cancelled
)

league_payment_amount_total = Counter(
    "league_payment_amount_total",
    "Total verified league payment amount in the lowest currency subunit",
    labelnames=["currency"],
)

payment_reconciliation_failures_total = Counter(
    "payment_reconciliation_failures_total",
    "Payments captured without a league activation (manual reconciliation needed)",
)

abandoned_payments_cleaned_total = Counter(
    "abandoned_payments_cleaned_total",
    "Pending checkouts expired by the cleanup job",
)

# Admin metrics
tier_admin_changes_total = Counter(
    "tier_admin_changes_total",
    "Tier configuration changes made by platform admins",
    labelnames=["action"],
)
