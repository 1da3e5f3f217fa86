from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings

EPOCH_FLOOR = date(1970, 1, 1)


class InvalidPeriodError(ValueError):
    pass


class PeriodPreset(str, Enum):
    last_3_months = "last-3-months"
    last_6_months = "last-6-months"
    last_year = "last-year"
    all_time = "all-time"


PRESET_MONTHS = {
    PeriodPreset.last_3_months: 3,
    PeriodPreset.last_6_months: 6,
    PeriodPreset.last_year: 12,
}


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class PeriodDescriptor:
    """Either a named preset or an explicit ``start``/``end`` pair, never both."""

    preset: Optional[PeriodPreset] = None
    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        has_pair = self.start is not None or self.end is not None
        if self.preset is not None:
            if has_pair:
                raise InvalidPeriodError(
                    "A period is either a preset or an explicit date pair"
                )
            try:
                preset = PeriodPreset(self.preset)
            except ValueError as exc:
                raise InvalidPeriodError(
                    f"Unknown period preset: {self.preset}"
                ) from exc
            object.__setattr__(self, "preset", preset)
            return
        if self.start is None or self.end is None:
            raise InvalidPeriodError("Custom period requires start and end dates")

    @classmethod
    def between(cls, start: date, end: date) -> "PeriodDescriptor":
        return cls(start=start, end=end)


def local_today() -> date:
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def add_months(base: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = (base.year * 12) + (base.month - 1) + months
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, min(base.day, days_in_month(year, month)))


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_starts(date_range: DateRange) -> list[date]:
    if date_range.start > date_range.end:
        return []
    current = date_range.start.replace(day=1)
    last = date_range.end.replace(day=1)
    months: list[date] = []
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def resolve_period(
    descriptor: PeriodDescriptor, *, today: Optional[date] = None
) -> DateRange:
    if descriptor.preset is None:
        return DateRange(descriptor.start, descriptor.end)

    today = today or local_today()
    if descriptor.preset == PeriodPreset.all_time:
        return DateRange(EPOCH_FLOOR, today)
    return DateRange(add_months(today, -PRESET_MONTHS[descriptor.preset]), today)


def _parse_date(value: str, label: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid {label} date: {value!r}") from exc


def parse_period(
    period: Optional[str], start: Optional[str], end: Optional[str]
) -> PeriodDescriptor:
    if period and period != "custom":
        if start or end:
            raise InvalidPeriodError(
                "A period is either a preset or an explicit date pair"
            )
        return PeriodDescriptor(preset=period)
    if not start or not end:
        raise InvalidPeriodError("Custom period requires start and end dates")
    return PeriodDescriptor.between(
        _parse_date(start, "start"), _parse_date(end, "end")
    )
