"""
Worker entry point.

Run with ``dramatiq jobs.worker``. Importing this module configures the
broker and logging and registers every actor.
"""

from compensation.utils.logging import setup_logging
from jobs.broker import broker
from jobs.tasks.daily_yield import process_daily_yield
from jobs.tasks.weekly_payout import process_weekly_payouts


setup_logging("compensation-worker")

__all__ = [
    "broker",
    "process_daily_yield",
    "process_weekly_payouts",
]
