from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from finance_api.services.reports import ReportResult


class CategoryBreakdown(BaseModel):
    category: str
    amount: float


class MonthBreakdown(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    amount: float


class BudgetComparisonItem(BaseModel):
    category: str
    budget: float
    actual: float
    difference: float


class ReportData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_expenses: float = Field(..., alias="totalExpenses")
    expenses_by_category: list[CategoryBreakdown] = Field(default_factory=list, alias="expensesByCategory")
    expenses_by_month: list[MonthBreakdown] = Field(default_factory=list, alias="expensesByMonth")
    budget_comparison: list[BudgetComparisonItem] = Field(default_factory=list, alias="budgetComparison")

    @classmethod
    def from_result(cls, result: ReportResult) -> "ReportData":
        return cls(
            total_expenses=float(result.total_expenses),
            expenses_by_category=[
                CategoryBreakdown(category=item.category, amount=float(item.amount))
                for item in result.category_totals
            ],
            expenses_by_month=[
                MonthBreakdown(month=item.month, amount=float(item.amount))
                for item in result.month_totals
            ],
            budget_comparison=[
                BudgetComparisonItem(
                    category=item.category,
                    budget=float(item.budget),
                    actual=float(item.actual),
                    difference=float(item.difference),
                )
                for item in result.budget_comparisons
            ],
        )


class ReportResponse(BaseModel):
    success: bool = True
    data: ReportData


class ErrorResponse(BaseModel):
    success: bool = False
    kind: str
    message: str
    error: str | None = None
