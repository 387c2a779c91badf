"""
Budget period normalization.

A budget amount is stated per recurrence period. To compare it against what
was actually spent over a reporting window, the amount is multiplied by the
number of periods the window touches. Partial periods count as whole ones and
the count never drops below one.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from loguru import logger

from finance_api.services.date_range import DateRange


class BudgetPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class NormalizedAmount:
    """
    Budget amount projected onto a reporting window.

    Attributes:
        amount: Scaled amount, or the raw amount when no scaling was possible
        periods: Multiplier that was applied (1 when unscaled)
        warning: Set when the period was not understood or scaling failed
    """
    amount: Decimal
    periods: int = 1
    warning: str | None = None


def count_months(date_range: DateRange) -> int:
    """Calendar months touched by the window, counting both end months."""
    start, end = date_range.start, date_range.end
    months = (end.year * 12 + end.month) - (start.year * 12 + start.month) + 1
    return max(1, months)


def count_weeks(date_range: DateRange) -> int:
    days = (date_range.end - date_range.start).days
    return max(1, math.ceil(days / 7))


def count_quarters(date_range: DateRange) -> int:
    return max(1, math.ceil(count_months(date_range) / 3))


def count_years(date_range: DateRange) -> int:
    start, end = date_range.start, date_range.end
    years = end.year - start.year
    if (end.month, end.day) >= (start.month, start.day):
        years += 1
    return max(1, years)


PERIOD_COUNTERS: dict[BudgetPeriod, Callable[[DateRange], int]] = {
    BudgetPeriod.WEEKLY: count_weeks,
    BudgetPeriod.MONTHLY: count_months,
    BudgetPeriod.QUARTERLY: count_quarters,
    BudgetPeriod.YEARLY: count_years,
}


def resolve_period(period: str | None, default: str = BudgetPeriod.MONTHLY.value) -> BudgetPeriod | None:
    """Map a stored period label to a BudgetPeriod, None when unrecognized.

    A missing or blank label falls back to ``default``.
    """
    label = (period or "").strip().lower() or default
    try:
        return BudgetPeriod(label)
    except ValueError:
        return None


def normalize_amount(
    amount: Decimal,
    period: str | None,
    date_range: DateRange,
    *,
    default_period: str = BudgetPeriod.MONTHLY.value,
) -> NormalizedAmount:
    """
    Scale a per-period budget amount to the reporting window.

    Args:
        amount: Budget amount for one period
        period: Stored period label (weekly, monthly, quarterly, yearly)
        date_range: The report's window
        default_period: Period assumed when the label is missing

    Returns:
        NormalizedAmount; unrecognized periods and arithmetic failures keep
        the raw amount and carry a warning instead of raising.
    """
    resolved = resolve_period(period, default_period)
    if resolved is None:
        warning = f"unknown budget period {period!r}, using original amount"
        logger.warning("Unknown budget period, using original amount", period=period)
        return NormalizedAmount(amount=amount, warning=warning)

    try:
        periods = PERIOD_COUNTERS[resolved](date_range)
        adjusted = amount * periods
    except (ArithmeticError, TypeError) as exc:
        logger.warning(
            "Failed to scale budget amount, using original amount",
            period=resolved.value,
            error=str(exc),
        )
        return NormalizedAmount(amount=amount, warning=f"scaling failed: {exc}")

    logger.debug("Normalized budget amount", period=resolved.value, periods=periods)
    return NormalizedAmount(amount=adjusted, periods=periods)
