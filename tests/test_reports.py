import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_api.core.config import Settings
from finance_api.core.errors import InvalidInput, InvalidRange, UpstreamUnavailable
from finance_api.services.date_range import DateRange
from finance_api.services.reports import ReportRun, ReportState, generate_report
from finance_api.services.store import BudgetRecord, ExpenseRecord


@pytest.mark.asyncio
async def test_reference_scenario(scenario_store):
    result = await generate_report(scenario_store, 1, "2024-01-01", "2024-02-29", settings=Settings())

    assert result.date_range == DateRange(start=date(2024, 1, 1), end=date(2024, 2, 29))
    assert result.total_expenses == Decimal("100")
    assert {(c.category, c.amount) for c in result.category_totals} == {
        ("Food", Decimal("80")),
        ("Transport", Decimal("20")),
    }
    assert {(m.month, m.amount) for m in result.month_totals} == {
        ("2024-01", Decimal("70")),
        ("2024-02", Decimal("30")),
    }
    [comparison] = result.budget_comparisons
    assert (comparison.category, comparison.budget, comparison.actual, comparison.difference) == (
        "Food",
        Decimal("200"),
        Decimal("80"),
        Decimal("120"),
    )
    assert result.warnings == []


@pytest.mark.asyncio
async def test_state_history_on_success(scenario_store):
    run = ReportRun(scenario_store, 1, "2024-01-01", "2024-01-31")
    await run.execute()

    assert run.state is ReportState.DONE
    assert run.history == [
        ReportState.VALIDATING,
        ReportState.FETCHING,
        ReportState.AGGREGATING,
        ReportState.COMPARING,
        ReportState.DONE,
    ]


@pytest.mark.asyncio
async def test_validation_failure_never_touches_store(scenario_store):
    run = ReportRun(scenario_store, 1, "2024-03-01", "2024-02-01")
    with pytest.raises(InvalidRange):
        await run.execute()

    assert run.state is ReportState.FAILED
    assert run.history == [ReportState.VALIDATING, ReportState.FAILED]
    assert scenario_store.calls == []


@pytest.mark.asyncio
async def test_missing_dates_fail_with_invalid_input(scenario_store):
    with pytest.raises(InvalidInput):
        await generate_report(scenario_store, 1, None, "2024-02-01", settings=Settings())


@pytest.mark.asyncio
async def test_store_failure_is_upstream_unavailable(store_factory):
    store = store_factory(fail_with=ConnectionError("database is down"))
    run = ReportRun(store, 1, "2024-01-01", "2024-01-31")

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await run.execute()

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.cause, ConnectionError)
    assert run.state is ReportState.FAILED
    assert ReportState.AGGREGATING not in run.history


@pytest.mark.asyncio
async def test_all_records_defective_still_completes(store_factory):
    store = store_factory(
        expenses=[
            ExpenseRecord(id=1, owner_id=1, amount="abc", category="Food", date="2024-01-02"),
            ExpenseRecord(id=2, owner_id=1, amount="10", category="Food", date="garbage"),
        ],
        budgets=[BudgetRecord(id=1, owner_id=1, amount="5", category=None, period="monthly")],
    )
    run = ReportRun(store, 1, "2024-01-01", "2024-01-31")
    result = await run.execute()

    assert run.state is ReportState.DONE
    assert result.total_expenses == Decimal("0")
    assert result.category_totals == []
    assert result.month_totals == []
    assert result.budget_comparisons == []
    assert len(result.warnings) == 3


@pytest.mark.asyncio
async def test_out_of_range_amounts_do_not_fail_the_report(store_factory):
    store = store_factory(
        expenses=[
            ExpenseRecord(id=1, owner_id=1, amount="9e999999", category="Food", date="2024-01-02"),
            ExpenseRecord(id=2, owner_id=1, amount="9e999999", category="Food", date="2024-01-03"),
        ],
        budgets=[BudgetRecord(id=1, owner_id=1, amount="-9e999999", category="Food", period="monthly")],
    )
    run = ReportRun(store, 1, "2024-01-01", "2024-01-31")
    result = await run.execute()

    assert run.state is ReportState.DONE
    assert result.total_expenses == Decimal("9e999999")
    assert result.budget_comparisons == []
    assert [(w.source, w.record_id) for w in result.warnings] == [("expense", 2), ("budget", 1)]


@pytest.mark.asyncio
async def test_every_owned_budget_is_compared(store_factory):
    store = store_factory(
        budgets=[
            BudgetRecord(id=1, owner_id=1, amount="100", category="Food", period="monthly"),
            BudgetRecord(id=2, owner_id=1, amount="50", category="Fun", period="biannual"),
        ]
    )
    result = await generate_report(store, 1, "2024-01-01", "2024-03-31", settings=Settings())

    assert {(c.category, c.budget, c.actual) for c in result.budget_comparisons} == {
        ("Food", Decimal("300"), Decimal("0")),
        ("Fun", Decimal("50"), Decimal("0")),
    }


@pytest.mark.asyncio
async def test_case_insensitive_setting_is_applied(store_factory):
    store = store_factory(
        expenses=[ExpenseRecord(id=1, owner_id=1, amount="12", category="food", date="2024-01-02")],
        budgets=[BudgetRecord(id=1, owner_id=1, amount="20", category="Food", period="monthly")],
    )
    settings = Settings(report_category_case_insensitive=True)

    result = await generate_report(store, 1, "2024-01-01", "2024-01-31", settings=settings)

    assert result.budget_comparisons[0].actual == Decimal("12")


@pytest.mark.asyncio
async def test_fetches_run_concurrently():
    budgets_started = asyncio.Event()

    class WaitingStore:
        async def list_expenses(self, owner_id, date_range):
            # only completes if the budget read was started alongside it
            await asyncio.wait_for(budgets_started.wait(), timeout=1)
            return []

        async def list_budgets(self, owner_id):
            budgets_started.set()
            return []

    result = await ReportRun(WaitingStore(), 1, "2024-01-01", "2024-01-31").execute()
    assert result.total_expenses == Decimal("0")


@pytest.mark.asyncio
async def test_run_cannot_be_reused(scenario_store):
    run = ReportRun(scenario_store, 1, "2024-01-01", "2024-01-31")
    await run.execute()
    with pytest.raises(RuntimeError):
        await run.execute()
