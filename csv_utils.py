import csv
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Sequence

from analytics import MonthlyRollup, Transaction
from models import TransactionType
from schemas import MAX_AMOUNT_CENTS, CSVRow

TRANSACTION_HEADER = [
    "Date",
    "Type",
    "Amount",
    "Category",
    "Description",
    "Account",
    "Recurring",
]
ROLLUP_HEADER = ["Month", "Label", "Income", "Expense", "Balance", "TopCategory"]

# Exports from the original dashboard backend use Portuguese type names.
TYPE_ALIASES = {
    "income": TransactionType.income,
    "receita": TransactionType.income,
    "expense": TransactionType.expense,
    "despesa": TransactionType.expense,
}


def sanitize_csv_value(value: str) -> str:
    """
    Prefix values that a spreadsheet would evaluate as a formula with a tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()
    if value.startswith(("=", "+", "-", "@", "\t", "\r")):
        return "\t" + value
    if re.match(r"^(cmd|powershell|bash|sh)\b|^http[s]?://", value, re.IGNORECASE):
        return "\t" + value
    return value


def parse_date(value: str):
    value = value.strip()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return datetime.strptime(value, "%d.%m.%Y").date()


def parse_amount(value: str) -> int:
    clean = value.strip().replace("€", "").replace("R$", "").replace("$", "")
    clean = clean.replace(" ", "").replace(",", ".")
    if clean.count(".") > 1:
        parts = clean.split(".")
        clean = "".join(parts[:-1]) + "." + parts[-1]
    try:
        amount = Decimal(clean)
        if not amount.is_finite():
            raise ValueError("Invalid amount")
        cents = abs(int((amount * 100).quantize(Decimal("1"))))
    except (InvalidOperation, OverflowError) as exc:
        raise ValueError("Invalid amount") from exc
    if cents > MAX_AMOUNT_CENTS:
        raise ValueError("Amount too large")
    return cents


def parse_type(value: str) -> TransactionType:
    key = value.strip().lower()
    if key not in TYPE_ALIASES:
        raise ValueError(f"Unknown transaction type '{value}'")
    return TYPE_ALIASES[key]


def parse_csv(content: str) -> tuple[list[CSVRow], list[str]]:
    reader = csv.DictReader(StringIO(content))
    rows: list[CSVRow] = []
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        try:
            category = (raw.get("Category") or "").strip()
            if not category:
                raise ValueError("Category is required")
            description = (raw.get("Description") or "").strip() or category
            recurring_raw = (raw.get("Recurring") or "").strip().lower()
            rows.append(
                CSVRow(
                    date=parse_date(raw.get("Date") or ""),
                    type=parse_type(raw.get("Type") or ""),
                    amount_cents=parse_amount(raw.get("Amount") or "0"),
                    category=category,
                    description=description,
                    account=(raw.get("Account") or "").strip(),
                    recurring=recurring_raw in {"1", "true", "yes", "y", "on"},
                )
            )
        except ValueError as exc:
            errors.append(f"Row {idx}: {exc}")
    return rows, errors


def export_transactions(transactions: Sequence[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(TRANSACTION_HEADER)
    for txn in transactions:
        writer.writerow(
            [
                txn.date.isoformat(),
                txn.type.value,
                f"{txn.magnitude_cents / 100:.2f}",
                sanitize_csv_value(txn.category),
                sanitize_csv_value(txn.description),
                sanitize_csv_value(txn.account),
                "1" if txn.recurring else "0",
            ]
        )
    return output.getvalue()


def export_monthly_rollups(rollups: Sequence[MonthlyRollup]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(ROLLUP_HEADER)
    for rollup in rollups:
        top = rollup.categories[0].category if rollup.categories else ""
        writer.writerow(
            [
                rollup.month,
                rollup.label,
                f"{rollup.income_cents / 100:.2f}",
                f"{rollup.expense_cents / 100:.2f}",
                f"{rollup.balance_cents / 100:.2f}",
                sanitize_csv_value(top),
            ]
        )
    return output.getvalue()
