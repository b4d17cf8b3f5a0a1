"""
Weekly payout task.

Turns available balances into payout requests on the release weekday.
"""

from datetime import date

import dramatiq
from loguru import logger

from compensation.config.settings import settings
from compensation.config.store import ConfigurationStore
from compensation.services.cycle.weekly_payout_processor import WeeklyPayoutProcessor
from compensation.utils.datetime_utils import iso_week_key, utc_today
from compensation.utils.distributed_lock import DistributedLock
from compensation.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session, run_async
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=3, time_limit=900_000)
def process_weekly_payouts(business_date: str | None = None) -> dict | None:
    """
    Create weekly payout requests.

    Args:
        business_date: ISO date of the release day (defaults to today, UTC)

    Returns:
        Batch summary, or None when another worker holds the week
    """
    day = date.fromisoformat(business_date) if business_date else utc_today()
    logger.info(f"Starting weekly payouts for {day.isoformat()}...")

    summary = run_async(_process_weekly_payouts_async(day))
    if summary is None:
        return None

    if summary["skipped"]:
        logger.info(f"Weekly payouts skipped: {summary['skipped']}")
    else:
        logger.info(
            f"Weekly payouts complete: "
            f"{summary['processed_count']} requests created, "
            f"total: {summary['total_amount']}"
        )
    return summary


async def _process_weekly_payouts_async(day: date) -> dict | None:
    """Async implementation of weekly payouts."""
    redis_client = get_redis_client()
    lock = DistributedLock(redis_client)

    try:
        async with lock.lock(
            f"weekly_payout:{iso_week_key(day)}",
            timeout=settings.weekly_payout_lock_timeout,
        ) as acquired:
            if not acquired:
                return None

            async with create_local_session() as session:
                snapshot = await ConfigurationStore(session).get_current()
                processor = WeeklyPayoutProcessor(session, snapshot)
                summary = await processor.run(day)
                return summary.to_dict()
    finally:
        await redis_client.aclose()
