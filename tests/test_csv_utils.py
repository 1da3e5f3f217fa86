from datetime import date

import pytest

from analytics import Transaction, build_monthly_rollups
from csv_utils import (
    export_monthly_rollups,
    parse_amount,
    parse_csv,
    sanitize_csv_value,
)
from models import TransactionType
from periods import DateRange


def income(day, amount_cents):
    return Transaction(
        "1", day, "Salary", amount_cents, TransactionType.income, "Salary"
    )


def expense(day, amount_cents, category):
    return Transaction(
        "2", day, category, amount_cents, TransactionType.expense, category
    )


@pytest.mark.parametrize(
    "raw,cents",
    [
        ("12.50", 1250),
        ("12,50", 1250),
        ("€ 1.234,56", 123456),
        ("-7", 700),
        ("R$ 10", 1000),
    ],
)
def test_parse_amount_accepts_common_formats(raw, cents):
    assert parse_amount(raw) == cents


def test_parse_amount_rejects_garbage():
    with pytest.raises(ValueError):
        parse_amount("twelve")


def test_parse_csv_collects_row_errors():
    rows, errors = parse_csv(
        "Date,Type,Amount,Category\n"
        "2025-02-01,Expense,5,Food\n"
        "2025-02-30,expense,5,Food\n"
        "2025-02-02,expense,5,\n"
    )
    assert [(r.date, r.type) for r in rows] == [
        (date(2025, 2, 1), TransactionType.expense)
    ]
    assert len(errors) == 2
    assert errors[0].startswith("Row 2:")
    assert errors[1] == "Row 3: Category is required"


def test_sanitize_blocks_formula_injection():
    assert sanitize_csv_value("=SUM(A1)") == "\t=SUM(A1)"
    assert sanitize_csv_value("https://example.com") == "\thttps://example.com"
    assert sanitize_csv_value("  Groceries ") == "Groceries"


def test_export_monthly_rollups():
    rollups = build_monthly_rollups(
        [income(date(2025, 1, 2), 100_000), expense(date(2025, 1, 3), 150_050, "Rent")],
        DateRange(date(2025, 1, 1), date(2025, 2, 28)),
    )
    lines = export_monthly_rollups(rollups).strip().splitlines()
    assert lines == [
        "Month,Label,Income,Expense,Balance,TopCategory",
        "2025-01,January 2025,1000.00,1500.50,-500.50,Rent",
        "2025-02,February 2025,0.00,0.00,0.00,",
    ]


def test_sanitize_leaves_ordinary_categories_alone():
    assert sanitize_csv_value("Shopping") == "Shopping"
    assert sanitize_csv_value("sh -c 'rm'") == "\tsh -c 'rm'"


@pytest.mark.parametrize("raw", ["Infinity", "-inf", "NaN", "sNaN", "1e40", "1e20"])
def test_parse_amount_rejects_non_finite_and_oversized(raw):
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_parse_csv_reports_bad_amounts_as_row_errors():
    rows, errors = parse_csv(
        "Date,Type,Amount,Category\n"
        "2025-02-01,expense,Infinity,Food\n"
        "2025-02-02,expense,sNaN,Food\n"
        "2025-02-03,expense,1e40,Food\n"
        "2025-02-04,expense,9.99,Food\n"
    )
    assert [r.amount_cents for r in rows] == [999]
    assert errors == [
        "Row 1: Invalid amount",
        "Row 2: Invalid amount",
        "Row 3: Invalid amount",
    ]
