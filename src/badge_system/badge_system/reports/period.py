from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..core.enums import PeriodKind
from ..core.exceptions import ValidationError

MAX_ISO_WEEK = 53
# The range end (next day, month or year) must stay representable.
MAX_YEAR = 9998


@dataclass(frozen=True)
class PeriodSelector:
    kind: PeriodKind
    week_number: int = 0
    month_number: int = 0
    year: Optional[int] = None


@dataclass(frozen=True)
class DateRange:
    """Half-open range of local days: start included, end excluded."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, datetime.min.time())

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end, datetime.min.time())

    def __contains__(self, value: Union[date, datetime]) -> bool:
        d = value.date() if isinstance(value, datetime) else value
        return self.start <= d < self.end


def iso_week(d: date) -> tuple[int, int]:
    """(ISO year, ISO week). Week 1 is the week holding the year's first Thursday."""
    iso = d.isocalendar()
    return iso[0], iso[1]


def iso_week_start(iso_year: int, week: int) -> date:
    """Monday of ISO week `week`; week 53 of a 52-week year runs into the next year."""
    return date.fromisocalendar(iso_year, 1, 1) + timedelta(weeks=week - 1)


def _first_of_month(year: int, month: int) -> date:
    return date(year, month, 1)


def _next_month(d: date) -> date:
    return date(d.year + 1, 1, 1) if d.month == 12 else date(d.year, d.month + 1, 1)


def _invalid(message: str) -> ValidationError:
    return ValidationError(message, code="invalid_period")


def _year(value: Optional[int], default: int) -> int:
    year = int(value or default)
    if year < 1 or year > MAX_YEAR:
        raise _invalid(f"Année invalide: {year}")
    return year


def resolve(selector: PeriodSelector, today: date) -> DateRange:
    try:
        kind = PeriodKind(selector.kind)
    except ValueError as e:
        raise _invalid(f"Période inconnue: {selector.kind}") from e

    if kind == PeriodKind.DAY:
        return DateRange(today, today + timedelta(days=1))

    if kind == PeriodKind.WEEK:
        n = int(selector.week_number or 0)
        if n < 0 or n > MAX_ISO_WEEK:
            raise _invalid(f"Numéro de semaine invalide: {n}")
        if n == 0:
            start = today - timedelta(days=today.weekday())
        else:
            start = iso_week_start(_year(selector.year, iso_week(today)[0]), n)
        return DateRange(start, start + timedelta(days=7))

    if kind == PeriodKind.MONTH:
        n = int(selector.month_number or 0)
        if n < 0 or n > 12:
            raise _invalid(f"Numéro de mois invalide: {n}")
        if n == 0:
            start = _first_of_month(today.year, today.month)
        else:
            start = _first_of_month(_year(selector.year, today.year), n)
        return DateRange(start, _next_month(start))

    year = _year(selector.year, today.year)
    return DateRange(date(year, 1, 1), date(year + 1, 1, 1))


def parse_selector(
    kind: Optional[str],
    *,
    week_number: Optional[str] = None,
    month_number: Optional[str] = None,
    year: Optional[str] = None,
) -> PeriodSelector:
    """Build a selector from query-string values."""
    try:
        return PeriodSelector(
            kind=PeriodKind((kind or PeriodKind.DAY.value).strip().lower()),
            week_number=int(week_number or 0),
            month_number=int(month_number or 0),
            year=int(year) if year else None,
        )
    except ValueError as e:
        raise _invalid("Période invalide") from e


def business_days(period: DateRange) -> int:
    """Monday to Friday days in the range."""
    count = 0
    d = period.start
    while d < period.end:
        if d.weekday() < 5:
            count += 1
        d += timedelta(days=1)
    return count
