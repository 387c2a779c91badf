from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from loguru import logger

from finance_api.core.config import Settings, get_settings
from finance_api.core.errors import RecordDefect, UpstreamUnavailable
from finance_api.services.aggregation import CategoryTotal, MonthTotal, aggregate_expenses
from finance_api.services.comparison import BudgetComparison, build_comparisons
from finance_api.services.date_range import DateRange, validate_date_range
from finance_api.services.store import BudgetRecord, ExpenseRecord, RecordStore


class ReportState(str, Enum):
    VALIDATING = "validating"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    COMPARING = "normalizing_comparing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ReportResult:
    """Budget-vs-actual report for one user and window. Never persisted."""

    date_range: DateRange
    total_expenses: Decimal
    category_totals: list[CategoryTotal]
    month_totals: list[MonthTotal]
    budget_comparisons: list[BudgetComparison]
    warnings: list[RecordDefect] = field(default_factory=list)


class ReportRun:
    """
    A single report generation, moving through
    validating -> fetching -> aggregating -> normalizing_comparing -> done.

    Any abort lands in ``failed``. Validation errors are raised before the
    store is touched; store errors surface as UpstreamUnavailable. Defective
    records never abort the run.
    """

    def __init__(
        self,
        store: RecordStore,
        owner_id: int,
        start: object,
        end: object,
        *,
        case_insensitive: bool = False,
        default_period: str = "monthly",
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.start = start
        self.end = end
        self.case_insensitive = case_insensitive
        self.default_period = default_period
        self.state = ReportState.VALIDATING
        self.history: list[ReportState] = [ReportState.VALIDATING]

    def _advance(self, state: ReportState) -> None:
        logger.debug("Report state change", owner_id=self.owner_id, previous=self.state.value, state=state.value)
        self.state = state
        self.history.append(state)

    async def execute(self) -> ReportResult:
        if self.state is not ReportState.VALIDATING or len(self.history) > 1:
            raise RuntimeError("ReportRun can only be executed once")

        try:
            date_range = validate_date_range(self.start, self.end)
            logger.info(
                "Report request",
                owner_id=self.owner_id,
                start=date_range.start.isoformat(),
                end=date_range.end.isoformat(),
            )

            self._advance(ReportState.FETCHING)
            expenses, budgets = await self._fetch(date_range)

            self._advance(ReportState.AGGREGATING)
            aggregation = aggregate_expenses(expenses)

            self._advance(ReportState.COMPARING)
            comparison = build_comparisons(
                budgets,
                aggregation.by_category,
                date_range,
                case_insensitive=self.case_insensitive,
                default_period=self.default_period,
            )
        except Exception:
            self._advance(ReportState.FAILED)
            raise

        self._advance(ReportState.DONE)
        warnings = [*aggregation.warnings, *comparison.warnings]
        if warnings:
            logger.warning("Report generated with skipped records", owner_id=self.owner_id, count=len(warnings))

        return ReportResult(
            date_range=date_range,
            total_expenses=aggregation.total,
            category_totals=aggregation.category_totals,
            month_totals=aggregation.month_totals,
            budget_comparisons=comparison.comparisons,
            warnings=warnings,
        )

    async def _fetch(self, date_range: DateRange) -> tuple[list[ExpenseRecord], list[BudgetRecord]]:
        try:
            expenses, budgets = await asyncio.gather(
                self.store.list_expenses(self.owner_id, date_range),
                self.store.list_budgets(self.owner_id),
            )
        except Exception as exc:
            logger.exception("Failed to fetch report records", owner_id=self.owner_id)
            raise UpstreamUnavailable(f"Failed to fetch records: {exc}", cause=exc) from exc

        logger.info(
            "Fetched report records",
            owner_id=self.owner_id,
            expenses=len(expenses),
            budgets=len(budgets),
        )
        return list(expenses), list(budgets)


async def generate_report(
    store: RecordStore,
    owner_id: int,
    start: object,
    end: object,
    settings: Settings | None = None,
) -> ReportResult:
    settings = settings or get_settings()
    run = ReportRun(
        store,
        owner_id,
        start,
        end,
        case_insensitive=settings.report_category_case_insensitive,
        default_period=settings.default_budget_period,
    )
    return await run.execute()
