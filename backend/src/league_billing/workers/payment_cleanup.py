"""
Background worker that expires abandoned league checkouts.

Pending payments older than settings.abandoned_payment_hours are cancelled at
the gateway, and their leagues move from pending_payment to abandoned.

Schedule: hourly via ARQ cron

Usage (with ARQ):
    arq league_billing.workers.payment_cleanup.WorkerSettings
"""
import structlog

from league_billing.config import settings
from league_billing.database import AsyncSessionLocal
from league_billing.middleware.logging import setup_logging
from league_billing.services.league_checkout_service import LeagueCheckoutService

logger = structlog.get_logger(__name__)


async def cleanup_abandoned_payments(ctx: dict) -> dict[str, int]:
    """
    ARQ task: expire pending checkouts past the configured age.

    Args:
        ctx: ARQ context; a "gateway" entry overrides the Stripe adapter

    Returns:
        Dict with the number of payments cleaned up
    """
    logger.info("payment_cleanup_worker_started", older_than_hours=settings.abandoned_payment_hours)

    async with AsyncSessionLocal() as db:
        try:
            service = LeagueCheckoutService(db, gateway=ctx.get("gateway"))
            cleaned = await service.cleanup_abandoned_payments()
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.exception("payment_cleanup_worker_failed", exc_info=e)
            raise

    logger.info("payment_cleanup_worker_completed", cleaned_count=cleaned)

    return {"cleaned_count": cleaned}


async def startup(ctx: dict) -> None:
    """Configure logging for the worker process."""
    setup_logging()


class WorkerSettings:
    """
    ARQ worker settings for checkout maintenance.

    Usage:
        arq league_billing.workers.payment_cleanup.WorkerSettings
    """

    functions = [cleanup_abandoned_payments]

    cron_jobs = [
        {
            "function": cleanup_abandoned_payments,
            "cron": "0 * * * *",  # Every hour at minute 0
            "timeout": 600,
        },
    ]

    on_startup = startup

    redis_settings = {
        "host": settings.arq_redis_url.host,
        "port": settings.arq_redis_url.port or 6379,
        "database": int((settings.arq_redis_url.path or "/0").lstrip("/") or 0),
    }

    max_jobs = 1
    job_timeout = 600


if __name__ == "__main__":
    """
    Run the cleanup once.

    Usage:
        python -m league_billing.workers.payment_cleanup
    """
    import asyncio

    setup_logging()
    asyncio.run(cleanup_abandoned_payments({"job_id": "manual_run"}))
