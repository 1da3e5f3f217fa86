from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from analytics import (
    AnalyticsReport,
    BudgetLimit,
    BudgetProgress,
    Transaction,
    budget_progress,
    build_report,
)
from config import get_settings
from csv_utils import export_transactions, parse_csv
from models import Budget, TransactionRecord, TransactionType
from periods import DateRange, PeriodDescriptor, resolve_period
from schemas import BudgetIn, TransactionIn

logger = logging.getLogger(__name__)


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    categories: list[str] = field(default_factory=list)
    query: Optional[str] = None
    min_cents: Optional[int] = None
    max_cents: Optional[int] = None


class TransactionNotFound(ValueError):
    pass


class BudgetNotFound(ValueError):
    pass


def to_domain(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=str(record.id),
        date=record.date,
        description=record.description,
        amount_cents=record.amount_cents,
        type=record.type,
        category=record.category,
        account=record.account or "",
        recurring=bool(record.recurring),
    )


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: TransactionIn) -> TransactionRecord:
        record = TransactionRecord(
            date=data.date,
            description=data.description.strip(),
            amount_cents=data.amount_cents,
            type=data.type,
            category=data.category,
            account=data.account,
            recurring=data.recurring,
        )
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get(self, transaction_id: int) -> TransactionRecord:
        record = self.session.get(TransactionRecord, transaction_id)
        if not record:
            raise TransactionNotFound("Transaction not found")
        return record

    def delete(self, transaction_id: int) -> None:
        record = self.get(transaction_id)
        self.session.delete(record)
        self.session.commit()

    def list(
        self,
        descriptor: Optional[PeriodDescriptor] = None,
        filters: Optional[TransactionFilters] = None,
        *,
        limit: int = 50,
        offset: int = 0,
        today: Optional[date] = None,
    ) -> list[TransactionRecord]:
        stmt = select(TransactionRecord)
        if descriptor is not None:
            date_range = resolve_period(descriptor, today=today)
            stmt = stmt.where(
                TransactionRecord.date.between(date_range.start, date_range.end)
            )
        if filters is not None:
            stmt = self._apply_filters(stmt, filters)
        stmt = stmt.order_by(TransactionRecord.date.desc(), TransactionRecord.id.desc())
        return list(self.session.scalars(stmt.limit(limit).offset(offset)))

    @staticmethod
    def _apply_filters(stmt, filters: TransactionFilters):
        if filters.type:
            stmt = stmt.where(TransactionRecord.type == filters.type)
        if filters.categories:
            stmt = stmt.where(TransactionRecord.category.in_(filters.categories))
        if filters.query:
            like = f"%{filters.query.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(TransactionRecord.description).like(like),
                    func.lower(TransactionRecord.category).like(like),
                )
            )
        if filters.min_cents is not None:
            stmt = stmt.where(TransactionRecord.amount_cents >= filters.min_cents)
        if filters.max_cents is not None:
            stmt = stmt.where(TransactionRecord.amount_cents <= filters.max_cents)
        return stmt

    def for_range(self, date_range: DateRange) -> list[Transaction]:
        # Ascending (date, id) fixes the order ties are broken in downstream.
        stmt = (
            select(TransactionRecord)
            .where(TransactionRecord.date.between(date_range.start, date_range.end))
            .order_by(TransactionRecord.date, TransactionRecord.id)
        )
        return [to_domain(r) for r in self.session.scalars(stmt)]


class AnalyticsService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.settings = get_settings()

    def report_for_range(self, date_range: DateRange) -> AnalyticsReport:
        transactions = TransactionService(self.session).for_range(date_range)
        report = build_report(
            transactions,
            date_range,
            top_n=self.settings.trend_top_n,
            locale=self.settings.month_label_locale,
        )
        logger.debug(
            "analytics_report: range=%s..%s transactions=%d months=%d",
            date_range.start,
            date_range.end,
            len(transactions),
            len(report.months),
        )
        return report

    def report(
        self, descriptor: PeriodDescriptor, *, today: Optional[date] = None
    ) -> AnalyticsReport:
        return self.report_for_range(resolve_period(descriptor, today=today))


class BudgetService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Budget]:
        return list(self.session.scalars(select(Budget).order_by(Budget.category)))

    def upsert(self, data: BudgetIn) -> Budget:
        budget = self.session.scalars(
            select(Budget).where(Budget.category == data.category)
        ).first()
        if budget is None:
            budget = Budget(category=data.category, limit_cents=data.limit_cents)
            self.session.add(budget)
        else:
            budget.limit_cents = data.limit_cents
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def delete(self, category: str) -> None:
        result = self.session.execute(delete(Budget).where(Budget.category == category))
        if not result.rowcount:
            raise BudgetNotFound(f"No budget for category '{category}'")
        self.session.commit()

    def progress(
        self, descriptor: PeriodDescriptor, *, today: Optional[date] = None
    ) -> list[BudgetProgress]:
        """Usage of each monthly limit against the latest month in the period."""
        report = AnalyticsService(self.session).report(descriptor, today=today)
        latest = report.months[-1].categories if report.months else ()
        limits = [BudgetLimit(b.category, b.limit_cents) for b in self.list_all()]
        return budget_progress(limits, latest)


class CSVService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def preview(self, content: str) -> tuple[list[TransactionIn], list[str]]:
        rows, errors = parse_csv(content)
        payloads = [
            TransactionIn(
                date=row.date,
                description=row.description[:200],
                amount_cents=row.amount_cents,
                type=row.type,
                category=row.category[:100],
                account=row.account[:100],
                recurring=row.recurring,
            )
            for row in rows
        ]
        return payloads, errors

    def commit(self, content: str) -> int:
        payloads, errors = self.preview(content)
        if errors:
            raise ValueError("; ".join(errors))
        for data in payloads:
            self.session.add(
                TransactionRecord(
                    date=data.date,
                    description=data.description,
                    amount_cents=data.amount_cents,
                    type=data.type,
                    category=data.category,
                    account=data.account,
                    recurring=data.recurring,
                )
            )
        self.session.commit()
        logger.info("csv_import: rows=%d", len(payloads))
        return len(payloads)

    def export(
        self, descriptor: PeriodDescriptor, *, today: Optional[date] = None
    ) -> tuple[DateRange, str]:
        date_range = resolve_period(descriptor, today=today)
        transactions = TransactionService(self.session).for_range(date_range)
        return date_range, export_transactions(transactions)
