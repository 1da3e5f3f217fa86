"""Pure aggregation pipeline behind the analytics dashboard.

Every function here takes plain values and returns fresh frozen dataclasses.
Nothing is cached and nothing touches the database, so the same inputs always
produce deep-equal outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from models import TransactionType
from periods import (
    DateRange,
    PeriodDescriptor,
    month_key,
    month_starts,
    resolve_period,
)

CATEGORY_PALETTE = ("chart-1", "chart-2", "chart-3", "chart-4", "chart-5")
DEFAULT_TREND_TOP_N = 5

MONTH_NAMES = {
    "en": (
        "January",
        "February",
        "March",
        "April",
        "May",
        "June",
        "July",
        "August",
        "September",
        "October",
        "November",
        "December",
    ),
    "pt": (
        "janeiro",
        "fevereiro",
        "março",
        "abril",
        "maio",
        "junho",
        "julho",
        "agosto",
        "setembro",
        "outubro",
        "novembro",
        "dezembro",
    ),
}


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    description: str
    amount_cents: int
    type: TransactionType
    category: str
    account: str = ""
    recurring: bool = False

    @property
    def magnitude_cents(self) -> int:
        return abs(self.amount_cents)

    @property
    def month(self) -> str:
        return month_key(self.date)


@dataclass(frozen=True)
class CategorySpending:
    category: str
    total_cents: int
    count: int
    percent: float
    color: str
    transactions: tuple[Transaction, ...]


@dataclass(frozen=True)
class MonthlyRollup:
    month: str
    label: str
    income_cents: int
    expense_cents: int
    balance_cents: int
    categories: tuple[CategorySpending, ...]


@dataclass(frozen=True)
class TrendPoint:
    month: str
    label: str
    amount_cents: int


@dataclass(frozen=True)
class CategoryTrendSeries:
    category: str
    points: tuple[TrendPoint, ...]


@dataclass(frozen=True)
class AnalyticsInsights:
    top_category: CategorySpending
    largest_expense: Transaction
    average_monthly_expense: float
    average_monthly_income: float
    average_monthly_savings: float
    growth_category: Optional[str]
    growth_percent: float


class HealthStatus(str, Enum):
    healthy = "healthy"
    warning = "warning"
    critical = "critical"


@dataclass(frozen=True)
class FinancialHealth:
    score: int
    status: HealthStatus


@dataclass(frozen=True)
class BudgetLimit:
    category: str
    limit_cents: int


@dataclass(frozen=True)
class BudgetProgress:
    category: str
    limit_cents: int
    spent_cents: int
    usage_percent: float
    remaining_cents: int


@dataclass(frozen=True)
class AnalyticsReport:
    range: DateRange
    categories: tuple[CategorySpending, ...]
    months: tuple[MonthlyRollup, ...]
    trends: tuple[CategoryTrendSeries, ...]
    insights: Optional[AnalyticsInsights]
    health: Optional[FinancialHealth]


def category_color(category: str) -> str:
    # Stateless stand-in for a category -> color registry.
    return CATEGORY_PALETTE[sum(ord(ch) for ch in category) % len(CATEGORY_PALETTE)]


def month_label(month_start: date, locale: str = "en") -> str:
    names = MONTH_NAMES.get(locale, MONTH_NAMES["en"])
    return f"{names[month_start.month - 1]} {month_start.year}"


def filter_transactions(
    transactions: Iterable[Transaction], date_range: DateRange
) -> list[Transaction]:
    return [txn for txn in transactions if date_range.contains(txn.date)]


def aggregate_categories(transactions: Iterable[Transaction]) -> list[CategorySpending]:
    """Group expenses by exact category name and rank them by total.

    Percentages are taken against the grand total of the given transactions,
    so callers scope the input (whole period or a single month) to pick the
    denominator. Ties on total are ordered by category name.
    """
    buckets: dict[str, list[Transaction]] = {}
    totals: dict[str, int] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        buckets.setdefault(txn.category, []).append(txn)
        totals[txn.category] = totals.get(txn.category, 0) + txn.magnitude_cents

    grand_total = sum(totals.values())
    if grand_total == 0:
        return []

    breakdown = [
        CategorySpending(
            category=name,
            total_cents=totals[name],
            count=len(items),
            percent=totals[name] / grand_total * 100,
            color=category_color(name),
            transactions=tuple(items),
        )
        for name, items in buckets.items()
    ]
    breakdown.sort(key=lambda c: (-c.total_cents, c.category))
    return breakdown


def build_monthly_rollups(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    *,
    locale: str = "en",
) -> list[MonthlyRollup]:
    months = month_starts(date_range)
    by_month: dict[str, list[Transaction]] = {month_key(m): [] for m in months}
    for txn in transactions:
        bucket = by_month.get(txn.month)
        if bucket is not None:
            bucket.append(txn)

    rollups: list[MonthlyRollup] = []
    for start in months:
        key = month_key(start)
        items = by_month[key]
        income = sum(
            t.magnitude_cents for t in items if t.type == TransactionType.income
        )
        expense = sum(
            t.magnitude_cents for t in items if t.type == TransactionType.expense
        )
        rollups.append(
            MonthlyRollup(
                month=key,
                label=month_label(start, locale),
                income_cents=income,
                expense_cents=expense,
                balance_cents=income - expense,
                categories=tuple(aggregate_categories(items)),
            )
        )
    return rollups


def _category_totals(rollup: MonthlyRollup) -> dict[str, int]:
    return {c.category: c.total_cents for c in rollup.categories}


def extract_trends(
    categories: Sequence[CategorySpending],
    rollups: Sequence[MonthlyRollup],
    top_n: int = DEFAULT_TREND_TOP_N,
) -> list[CategoryTrendSeries]:
    if top_n <= 0:
        return []
    month_totals = [_category_totals(r) for r in rollups]
    series: list[CategoryTrendSeries] = []
    for spending in categories[:top_n]:
        points = tuple(
            TrendPoint(
                month=rollup.month,
                label=rollup.label,
                amount_cents=totals.get(spending.category, 0),
            )
            for rollup, totals in zip(rollups, month_totals)
        )
        series.append(CategoryTrendSeries(category=spending.category, points=points))
    return series


def _mean(values: Sequence[int]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def growth_leader(rollups: Sequence[MonthlyRollup]) -> tuple[Optional[str], float]:
    """Category whose last-month spend most exceeds its mean over prior months.

    Categories without prior spending (mean of zero) never lead. Returns
    ``(None, 0.0)`` with fewer than two months or when nothing grew.
    """
    if len(rollups) < 2:
        return None, 0.0

    latest = rollups[-1]
    prior_totals = [_category_totals(r) for r in rollups[:-1]]
    leader: Optional[str] = None
    best = 0.0
    for spending in latest.categories:
        prior_mean = _mean([t.get(spending.category, 0) for t in prior_totals])
        if prior_mean <= 0:
            continue
        growth = (spending.total_cents - prior_mean) / prior_mean * 100
        if growth > best:
            best = growth
            leader = spending.category
    return leader, best


def synthesize_insights(
    categories: Sequence[CategorySpending],
    rollups: Sequence[MonthlyRollup],
    transactions: Sequence[Transaction],
) -> Optional[AnalyticsInsights]:
    if not categories or not transactions:
        return None

    expenses = [t for t in transactions if t.type == TransactionType.expense]
    if not expenses:
        return None
    largest = expenses[0]
    for txn in expenses[1:]:
        if txn.magnitude_cents > largest.magnitude_cents:
            largest = txn

    average_expense = _mean([r.expense_cents for r in rollups])
    average_income = _mean([r.income_cents for r in rollups])
    leader, growth = growth_leader(rollups)
    return AnalyticsInsights(
        top_category=categories[0],
        largest_expense=largest,
        average_monthly_expense=average_expense,
        average_monthly_income=average_income,
        average_monthly_savings=average_income - average_expense,
        growth_category=leader,
        growth_percent=growth,
    )


def financial_health(income_cents: float, expense_cents: float) -> FinancialHealth:
    raw = 0.0
    if income_cents > 0:
        ratio = (income_cents - expense_cents) / income_cents
        raw = max(0.0, min(100.0, ratio * 100))

    if raw >= 70:
        status = HealthStatus.healthy
    elif raw >= 40:
        status = HealthStatus.warning
    else:
        status = HealthStatus.critical
    score = int(Decimal(str(raw)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return FinancialHealth(score=score, status=status)


def budget_progress(
    limits: Iterable[BudgetLimit], categories: Sequence[CategorySpending]
) -> list[BudgetProgress]:
    spent_by_category = {c.category: c.total_cents for c in categories}
    out: list[BudgetProgress] = []
    for limit in limits:
        spent = spent_by_category.get(limit.category, 0)
        usage = 0.0
        if limit.limit_cents > 0:
            usage = min(100.0, spent / limit.limit_cents * 100)
        out.append(
            BudgetProgress(
                category=limit.category,
                limit_cents=limit.limit_cents,
                spent_cents=spent,
                usage_percent=usage,
                remaining_cents=max(0, limit.limit_cents - spent),
            )
        )
    return out


def build_report(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    *,
    top_n: int = DEFAULT_TREND_TOP_N,
    locale: str = "en",
) -> AnalyticsReport:
    filtered = filter_transactions(transactions, date_range)
    categories = aggregate_categories(filtered)
    rollups = build_monthly_rollups(filtered, date_range, locale=locale)
    trends = extract_trends(categories, rollups, top_n)
    insights = synthesize_insights(categories, rollups, filtered)
    health = None
    if insights is not None:
        health = financial_health(
            insights.average_monthly_income, insights.average_monthly_expense
        )
    return AnalyticsReport(
        range=date_range,
        categories=tuple(categories),
        months=tuple(rollups),
        trends=tuple(trends),
        insights=insights,
        health=health,
    )


def analyze(
    transactions: Iterable[Transaction],
    descriptor: PeriodDescriptor,
    *,
    today: Optional[date] = None,
    top_n: int = DEFAULT_TREND_TOP_N,
    locale: str = "en",
) -> AnalyticsReport:
    date_range = resolve_period(descriptor, today=today)
    return build_report(transactions, date_range, top_n=top_n, locale=locale)
