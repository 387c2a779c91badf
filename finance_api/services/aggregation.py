from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from loguru import logger

from finance_api.core.errors import RecordDefect
from finance_api.services.date_range import parse_day
from finance_api.services.store import ExpenseRecord

DEFAULT_CATEGORY = "other"
ZERO = Decimal("0")


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class MonthTotal:
    month: str
    amount: Decimal


@dataclass(frozen=True)
class _UsableExpense:
    amount: Decimal
    category: str
    day: date


@dataclass
class Aggregation:
    """Running totals of a single pass over the expense set.

    The dicts keep first-seen order, which is the order the lists are emitted in.
    """
    total: Decimal = ZERO
    by_category: dict[str, Decimal] = field(default_factory=dict)
    by_month: dict[str, Decimal] = field(default_factory=dict)
    warnings: list[RecordDefect] = field(default_factory=list)

    def add(self, expense: _UsableExpense) -> None:
        """Fold one expense in. Nothing is updated if any of the sums overflows."""
        month = month_key(expense.day)
        total = self.total + expense.amount
        category_total = self.by_category.get(expense.category, ZERO) + expense.amount
        month_total = self.by_month.get(month, ZERO) + expense.amount
        self.total = total
        self.by_category[expense.category] = category_total
        self.by_month[month] = month_total

    @property
    def category_totals(self) -> list[CategoryTotal]:
        return [
            CategoryTotal(category=name, amount=amount)
            for name, amount in self.by_category.items()
            if amount != ZERO
        ]

    @property
    def month_totals(self) -> list[MonthTotal]:
        return [MonthTotal(month=month, amount=amount) for month, amount in self.by_month.items()]


def aggregate_expenses(expenses: Iterable[ExpenseRecord]) -> Aggregation:
    """
    Reduce expense records into the overall, per-category and per-month totals.

    Records with an unusable amount or date are left out of every total and
    reported in ``Aggregation.warnings`` instead of failing the report.
    """
    aggregation = Aggregation()
    for record in expenses:
        parsed = _check_expense(record)
        if isinstance(parsed, RecordDefect):
            logger.warning(
                "Skipping expense record",
                record_id=parsed.record_id,
                reason=parsed.reason,
            )
            aggregation.warnings.append(parsed)
            continue
        try:
            aggregation.add(parsed)
        except ArithmeticError:
            logger.warning("Skipping expense record", record_id=record.id, reason="amount out of range")
            aggregation.warnings.append(RecordDefect("expense", record.id, "amount out of range"))

    logger.debug(
        "Aggregated expenses",
        total=str(aggregation.total),
        categories=len(aggregation.by_category),
        months=len(aggregation.by_month),
        skipped=len(aggregation.warnings),
    )
    return aggregation


def parse_amount(value: object) -> Decimal | None:
    """Return ``value`` as a finite Decimal, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not amount.is_finite():
        return None
    return amount


def normalize_category(value: object) -> str:
    if value is None:
        return DEFAULT_CATEGORY
    category = str(value)
    if not category.strip():
        return DEFAULT_CATEGORY
    return category


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def _check_expense(record: ExpenseRecord) -> _UsableExpense | RecordDefect:
    amount = parse_amount(record.amount)
    if amount is None:
        return RecordDefect("expense", record.id, f"invalid amount {record.amount!r}")

    day = parse_day(record.date)
    if day is None:
        return RecordDefect("expense", record.id, f"invalid date {record.date!r}")

    return _UsableExpense(amount=amount, category=normalize_category(record.category), day=day)
