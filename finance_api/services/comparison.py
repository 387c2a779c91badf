from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger

from finance_api.core.errors import RecordDefect
from finance_api.services.aggregation import ZERO, parse_amount
from finance_api.services.date_range import DateRange
from finance_api.services.periods import normalize_amount
from finance_api.services.store import BudgetRecord


@dataclass(frozen=True)
class BudgetComparison:
    category: str
    budget: Decimal
    actual: Decimal
    difference: Decimal


@dataclass
class ComparisonResult:
    comparisons: list[BudgetComparison] = field(default_factory=list)
    warnings: list[RecordDefect] = field(default_factory=list)


class ActualsLookup:
    """Spent amount per category, optionally ignoring case and surrounding blanks."""

    def __init__(self, category_totals: Mapping[str, Decimal], *, case_insensitive: bool = False) -> None:
        self._case_insensitive = case_insensitive
        self._totals: dict[str, Decimal] = {}
        for category, amount in category_totals.items():
            key = self._key(category)
            self._totals[key] = self._totals.get(key, ZERO) + amount

    def _key(self, category: str) -> str:
        if self._case_insensitive:
            return category.strip().casefold()
        return category

    def get(self, category: str) -> Decimal:
        return self._totals.get(self._key(category), ZERO)


def build_comparisons(
    budgets: Iterable[BudgetRecord],
    category_totals: Mapping[str, Decimal],
    date_range: DateRange,
    *,
    case_insensitive: bool = False,
    default_period: str = "monthly",
) -> ComparisonResult:
    """
    Compare every budget the user owns against the category actuals.

    One entry is emitted per budget record; budgets that share a category are
    not merged. Budgets without a category are skipped, unparseable amounts
    count as zero.
    """
    actuals = ActualsLookup(category_totals, case_insensitive=case_insensitive)
    result = ComparisonResult()

    for budget in budgets:
        if budget is None or budget.category is None or not str(budget.category).strip():
            record_id = budget.id if budget is not None else None
            logger.warning("Skipping budget without category", record_id=record_id)
            result.warnings.append(RecordDefect("budget", record_id, "missing category"))
            continue

        category = str(budget.category)
        amount = parse_amount(budget.amount)
        if amount is None:
            logger.warning("Invalid budget amount, using 0", record_id=budget.id, amount=repr(budget.amount))
            result.warnings.append(RecordDefect("budget", budget.id, f"invalid amount {budget.amount!r}"))
            amount = ZERO

        normalized = normalize_amount(amount, budget.period, date_range, default_period=default_period)
        if normalized.warning:
            result.warnings.append(RecordDefect("budget", budget.id, normalized.warning))

        actual = actuals.get(category)
        try:
            difference = normalized.amount - actual
        except ArithmeticError:
            logger.warning("Skipping budget comparison", record_id=budget.id, reason="difference out of range")
            result.warnings.append(RecordDefect("budget", budget.id, "difference out of range"))
            continue
        result.comparisons.append(
            BudgetComparison(
                category=category,
                budget=normalized.amount,
                actual=actual,
                difference=difference,
            )
        )

    logger.debug("Built budget comparisons", count=len(result.comparisons), skipped=len(result.warnings))
    return result
