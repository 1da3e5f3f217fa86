from datetime import date

import pytest

from periods import (
    EPOCH_FLOOR,
    DateRange,
    InvalidPeriodError,
    PeriodDescriptor,
    PeriodPreset,
    add_months,
    month_starts,
    parse_period,
    resolve_period,
)


def test_presets_subtract_calendar_months_from_today():
    today = date(2025, 8, 20)
    assert resolve_period(
        PeriodDescriptor(preset=PeriodPreset.last_3_months), today=today
    ) == DateRange(date(2025, 5, 20), today)
    assert resolve_period(
        PeriodDescriptor(preset=PeriodPreset.last_6_months), today=today
    ) == DateRange(date(2025, 2, 20), today)
    assert resolve_period(
        PeriodDescriptor(preset=PeriodPreset.last_year), today=today
    ) == DateRange(date(2024, 8, 20), today)


def test_preset_clamps_day_to_shorter_month():
    rng = resolve_period(
        PeriodDescriptor(preset="last-3-months"), today=date(2025, 5, 31)
    )
    assert rng.start == date(2025, 2, 28)

    leap = resolve_period(PeriodDescriptor(preset="last-year"), today=date(2024, 2, 29))
    assert leap.start == date(2023, 2, 28)


def test_all_time_starts_at_epoch_floor():
    today = date(2025, 1, 2)
    rng = resolve_period(PeriodDescriptor(preset="all-time"), today=today)
    assert rng == DateRange(EPOCH_FLOOR, today)


def test_explicit_pair_passes_through_even_when_inverted():
    rng = resolve_period(PeriodDescriptor.between(date(2025, 3, 1), date(2025, 1, 1)))
    assert rng == DateRange(date(2025, 3, 1), date(2025, 1, 1))
    assert not rng.contains(date(2025, 2, 1))


def test_range_includes_both_endpoints():
    rng = DateRange(date(2025, 1, 1), date(2025, 1, 31))
    assert rng.contains(date(2025, 1, 1))
    assert rng.contains(date(2025, 1, 31))
    assert not rng.contains(date(2025, 2, 1))


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"preset": "last-2-weeks"},
        {"start": date(2025, 1, 1)},
        {"end": date(2025, 1, 1)},
        {"preset": "all-time", "start": date(2025, 1, 1), "end": date(2025, 2, 1)},
    ],
)
def test_malformed_descriptor_fails_fast(kwargs):
    with pytest.raises(InvalidPeriodError):
        PeriodDescriptor(**kwargs)


def test_parse_period_from_query_strings():
    preset = parse_period("last-6-months", None, None)
    assert preset.preset == PeriodPreset.last_6_months
    custom = parse_period(None, "2025-01-01", "2025-02-15")
    assert (custom.start, custom.end) == (date(2025, 1, 1), date(2025, 2, 15))
    assert parse_period("custom", "2025-01-01", "2025-01-31").preset is None


@pytest.mark.parametrize(
    "args",
    [
        (None, None, None),
        ("custom", "2025-01-01", None),
        ("custom", "01/02/2025", "2025-02-01"),
        ("last-year", "2025-01-01", "2025-02-01"),
        ("yesterday", None, None),
    ],
)
def test_parse_period_rejects_malformed_input(args):
    with pytest.raises(InvalidPeriodError):
        parse_period(*args)


def test_add_months_across_year_boundary():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2025, 1, 31), -2) == date(2024, 11, 30)


def test_month_starts_spans_partial_months_inclusively():
    months = month_starts(DateRange(date(2024, 11, 20), date(2025, 2, 1)))
    assert months == [
        date(2024, 11, 1),
        date(2024, 12, 1),
        date(2025, 1, 1),
        date(2025, 2, 1),
    ]
    assert month_starts(DateRange(date(2025, 3, 5), date(2025, 3, 6))) == [
        date(2025, 3, 1)
    ]
    assert month_starts(DateRange(date(2025, 3, 5), date(2025, 1, 6))) == []
