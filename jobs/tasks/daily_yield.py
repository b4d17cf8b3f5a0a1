"""
Daily yield task.

Credits the daily yield of all active positions for one business day.
Enqueued once per day by the external scheduler; safe to re-run.
"""

from datetime import date

import dramatiq
from loguru import logger

from compensation.config.settings import settings
from compensation.config.store import ConfigurationStore
from compensation.services.cycle.daily_yield_processor import DailyYieldProcessor
from compensation.utils.datetime_utils import utc_today
from compensation.utils.distributed_lock import DistributedLock
from compensation.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session, run_async
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=3, time_limit=900_000)  # 15 min, longer than the lock
def process_daily_yield(business_date: str | None = None) -> dict | None:
    """
    Process daily yield for one business day.

    Args:
        business_date: ISO date to credit (defaults to today, UTC)

    Returns:
        Batch summary, or None when another worker holds the day
    """
    day = date.fromisoformat(business_date) if business_date else utc_today()
    logger.info(f"Starting daily yield processing for {day.isoformat()}...")

    summary = run_async(_process_daily_yield_async(day))
    if summary is None:
        return None

    logger.info(
        f"Daily yield processing complete: "
        f"{summary['processed_count']} positions credited, "
        f"total: {summary['total_amount']}"
    )
    return summary


async def _process_daily_yield_async(day: date) -> dict | None:
    """Async implementation of daily yield processing."""
    redis_client = get_redis_client()
    lock = DistributedLock(redis_client)

    try:
        async with lock.lock(
            f"daily_yield:{day.isoformat()}",
            timeout=settings.daily_yield_lock_timeout,
        ) as acquired:
            if not acquired:
                return None

            async with create_local_session() as session:
                snapshot = await ConfigurationStore(session).get_current()
                processor = DailyYieldProcessor(session, snapshot)
                summary = await processor.run(day)
                return summary.to_dict()
    finally:
        await redis_client.aclose()
