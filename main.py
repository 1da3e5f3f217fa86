import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from config import get_settings
from csv_utils import export_monthly_rollups
from database import new_session
from models import TransactionType
from periods import InvalidPeriodError, PeriodDescriptor, parse_period
from schemas import (
    MAX_AMOUNT_CENTS,
    AnalyticsReportOut,
    BudgetIn,
    BudgetOut,
    BudgetProgressOut,
    TransactionIn,
    TransactionOut,
    TransactionPage,
)
from services import (
    AnalyticsService,
    BudgetNotFound,
    BudgetService,
    CSVService,
    TransactionFilters,
    TransactionNotFound,
    TransactionService,
    to_domain,
)

logging.basicConfig(level=get_settings().log_level)

app = FastAPI(title="Finance Analytics")


def get_db():
    db = new_session()
    try:
        yield db
    finally:
        db.close()


def period_from_query(
    period: Optional[str] = Query(None),
    start: Optional[str] = Query(None, alias="from"),
    end: Optional[str] = Query(None, alias="to"),
) -> PeriodDescriptor:
    try:
        return parse_period(period, start, end)
    except InvalidPeriodError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def optional_period_from_query(
    period: Optional[str] = Query(None),
    start: Optional[str] = Query(None, alias="from"),
    end: Optional[str] = Query(None, alias="to"),
) -> Optional[PeriodDescriptor]:
    if not period and not start and not end:
        return None
    return period_from_query(period, start, end)


def csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/analytics", response_model=AnalyticsReportOut)
def api_analytics(
    descriptor: PeriodDescriptor = Depends(period_from_query),
    db: Session = Depends(get_db),
):
    report = AnalyticsService(db).report(descriptor)
    return AnalyticsReportOut.model_validate(report)


@app.get("/api/analytics/monthly.csv")
def api_analytics_monthly_csv(
    descriptor: PeriodDescriptor = Depends(period_from_query),
    db: Session = Depends(get_db),
):
    report = AnalyticsService(db).report(descriptor)
    filename = f"monthly_{report.range.start}_{report.range.end}.csv"
    return csv_response(export_monthly_rollups(report.months), filename)


@app.get("/api/transactions", response_model=TransactionPage)
def api_transactions(
    descriptor: Optional[PeriodDescriptor] = Depends(optional_period_from_query),
    q: Optional[str] = Query(None),
    type: Optional[TransactionType] = Query(None),
    category: list[str] = Query(default=[]),
    min_cents: Optional[int] = Query(None, ge=0, le=MAX_AMOUNT_CENTS),
    max_cents: Optional[int] = Query(None, ge=0, le=MAX_AMOUNT_CENTS),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    filters = TransactionFilters(
        type=type,
        categories=category,
        query=q.strip() if q else None,
        min_cents=min_cents,
        max_cents=max_cents,
    )
    offset = (page - 1) * limit
    items = TransactionService(db).list(
        descriptor, filters, limit=limit + 1, offset=offset
    )
    has_more = len(items) > limit
    return TransactionPage(
        items=[TransactionOut.model_validate(to_domain(r)) for r in items[:limit]],
        page=page,
        limit=limit,
        has_more=has_more,
    )


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def api_create_transaction(payload: TransactionIn, db: Session = Depends(get_db)):
    record = TransactionService(db).create(payload)
    logging.info(
        "transaction_created: id=%s type=%s category=%s",
        record.id,
        record.type.value,
        record.category,
    )
    return TransactionOut.model_validate(to_domain(record))


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except TransactionNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    logging.info("transaction_deleted: id=%s", transaction_id)


@app.post("/api/transactions/import")
async def api_import_transactions(
    file: UploadFile = File(...), db: Session = Depends(get_db)
):
    raw = await file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(raw) > get_settings().max_import_bytes:
        raise HTTPException(status_code=400, detail="CSV file too large")
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8") from exc
    try:
        count = CSVService(db).commit(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"imported": count}


@app.get("/api/transactions/export.csv")
def api_export_transactions(
    descriptor: PeriodDescriptor = Depends(period_from_query),
    db: Session = Depends(get_db),
):
    date_range, content = CSVService(db).export(descriptor)
    filename = f"transactions_{date_range.start}_{date_range.end}.csv"
    return csv_response(content, filename)


@app.get("/api/budgets", response_model=list[BudgetOut])
def api_budgets(db: Session = Depends(get_db)):
    return [BudgetOut.model_validate(b) for b in BudgetService(db).list_all()]


@app.put("/api/budgets", response_model=BudgetOut)
def api_upsert_budget(payload: BudgetIn, db: Session = Depends(get_db)):
    budget = BudgetService(db).upsert(payload)
    logging.info(
        "budget_saved: category=%s limit_cents=%s", budget.category, budget.limit_cents
    )
    return BudgetOut.model_validate(budget)


@app.delete("/api/budgets/{category}", status_code=204)
def api_delete_budget(category: str, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(category)
    except BudgetNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/budgets/progress", response_model=list[BudgetProgressOut])
def api_budget_progress(
    descriptor: PeriodDescriptor = Depends(period_from_query),
    db: Session = Depends(get_db),
):
    progress = BudgetService(db).progress(descriptor)
    return [BudgetProgressOut.model_validate(p) for p in progress]
