"""
Cycle scheduler services package.

- yield_calculator: tier selection and daily yield arithmetic
- daily_yield_processor: daily yield batch (Mon-Fri)
- weekly_payout_processor: weekly payout requests and settlement
- batch_summary: aggregate result of a batch tick
"""

from compensation.services.cycle.batch_summary import BatchSummary
from compensation.services.cycle.daily_yield_processor import DailyYieldProcessor
from compensation.services.cycle.weekly_payout_processor import (
    WeeklyPayoutProcessor,
)
from compensation.services.cycle.yield_calculator import (
    daily_yield_amount,
    has_days_left,
    select_tier,
)


__all__ = [
    "BatchSummary",
    "DailyYieldProcessor",
    "WeeklyPayoutProcessor",
    "daily_yield_amount",
    "has_days_left",
    "select_tier",
]
