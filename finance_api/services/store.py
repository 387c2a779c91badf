from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finance_api.db import models
from finance_api.services.date_range import DateRange


@dataclass(frozen=True)
class ExpenseRecord:
    """Raw expense row handed to the reporting engine.

    ``amount`` and ``date`` are kept as they came out of storage; the
    aggregator decides whether they are usable.
    """
    id: int | None
    owner_id: int | None
    amount: object
    category: str | None
    date: object


@dataclass(frozen=True)
class BudgetRecord:
    id: int | None
    owner_id: int | None
    amount: object
    category: str | None
    period: str | None = "monthly"


class RecordStore(Protocol):
    async def list_expenses(self, owner_id: int, date_range: DateRange) -> list[ExpenseRecord]:
        ...

    async def list_budgets(self, owner_id: int) -> list[BudgetRecord]:
        ...


class SqlAlchemyRecordStore:
    """Record store backed by the ORM models.

    Each read opens its own session so the two reads of a report can be
    awaited concurrently.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_expenses(self, owner_id: int, date_range: DateRange) -> list[ExpenseRecord]:
        stmt = (
            select(models.Expense)
            .where(
                models.Expense.user_id == owner_id,
                models.Expense.date >= date_range.start,
                models.Expense.date <= date_range.end,
            )
            .order_by(models.Expense.date, models.Expense.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_expense_to_record(row) for row in result.scalars().all()]

    async def list_budgets(self, owner_id: int) -> list[BudgetRecord]:
        stmt = (
            select(models.Budget)
            .where(models.Budget.user_id == owner_id)
            .order_by(models.Budget.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_budget_to_record(row) for row in result.scalars().all()]


def _expense_to_record(expense: models.Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        owner_id=expense.user_id,
        amount=expense.amount,
        category=expense.category,
        date=expense.date,
    )


def _budget_to_record(budget: models.Budget) -> BudgetRecord:
    return BudgetRecord(
        id=budget.id,
        owner_id=budget.user_id,
        amount=budget.amount,
        category=budget.category,
        period=budget.period,
    )
