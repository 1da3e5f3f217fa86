from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from analytics import HealthStatus
from models import TransactionType

# Largest value a SQLite INTEGER column holds.
MAX_AMOUNT_CENTS = 2**63 - 1


class TransactionIn(BaseModel):
    date: date
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., ge=0, le=MAX_AMOUNT_CENTS)
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    account: str = Field(default="", max_length=100)
    recurring: bool = False


class BudgetIn(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    limit_cents: int = Field(..., ge=0, le=MAX_AMOUNT_CENTS)


class CSVRow(BaseModel):
    date: date
    type: TransactionType
    amount_cents: int = Field(..., ge=0, le=MAX_AMOUNT_CENTS)
    category: str
    description: str
    account: str = ""
    recurring: bool = False


class OutModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TransactionOut(OutModel):
    id: str
    date: date
    description: str
    amount_cents: int
    type: TransactionType
    category: str
    account: str
    recurring: bool


class TransactionPage(OutModel):
    items: list[TransactionOut]
    page: int
    limit: int
    has_more: bool


class DateRangeOut(OutModel):
    start: date
    end: date


class CategorySpendingOut(OutModel):
    category: str
    total_cents: int
    count: int
    percent: float
    color: str
    transactions: list[TransactionOut]


class MonthlyRollupOut(OutModel):
    month: str
    label: str
    income_cents: int
    expense_cents: int
    balance_cents: int
    categories: list[CategorySpendingOut]


class TrendPointOut(OutModel):
    month: str
    label: str
    amount_cents: int


class CategoryTrendSeriesOut(OutModel):
    category: str
    points: list[TrendPointOut]


class AnalyticsInsightsOut(OutModel):
    top_category: CategorySpendingOut
    largest_expense: TransactionOut
    average_monthly_expense: float
    average_monthly_income: float
    average_monthly_savings: float
    growth_category: Optional[str]
    growth_percent: float


class FinancialHealthOut(OutModel):
    score: int
    status: HealthStatus


class AnalyticsReportOut(OutModel):
    range: DateRangeOut
    categories: list[CategorySpendingOut]
    months: list[MonthlyRollupOut]
    trends: list[CategoryTrendSeriesOut]
    insights: Optional[AnalyticsInsightsOut]
    health: Optional[FinancialHealthOut]


class BudgetOut(OutModel):
    category: str
    limit_cents: int


class BudgetProgressOut(OutModel):
    category: str
    limit_cents: int
    spent_cents: int
    usage_percent: float
    remaining_cents: int
