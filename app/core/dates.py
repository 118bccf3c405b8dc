"""
Partial dates for historical records.

Birth and death dates are often known only to the year. A date is kept
as a tagged value, either YearOnly or FullDate, so comparison rules can
dispatch on the pair of precisions instead of re-parsing strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, timedelta
from typing import Union

from app.core.errors import InvalidDate

YEAR = "year"
FULL = "full"

_YEAR_RE = re.compile(r"^(\d{4})$")
_FULL_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass(frozen=True)
class YearOnly:
    value: int

    precision = YEAR

    @property
    def year(self) -> int:
        return self.value

    def __str__(self) -> str:
        return f"{self.value:04d}"


@dataclass(frozen=True)
class FullDate:
    value: date

    precision = FULL

    @property
    def year(self) -> int:
        return self.value.year

    def __str__(self) -> str:
        return self.value.isoformat()


PartialDate = Union[YearOnly, FullDate]


def parse_partial_date(text: str | PartialDate) -> PartialDate:
    if isinstance(text, (YearOnly, FullDate)):
        return text

    raw = (text or "").strip()

    m = _YEAR_RE.match(raw)
    if m:
        year = int(m.group(1))
        if year < 1:
            raise InvalidDate(f"Invalid year: {text!r}", value=text)
        return YearOnly(year)

    m = _FULL_RE.match(raw)
    if m:
        try:
            return FullDate(date(int(m.group(1)), int(m.group(2)), int(m.group(3))))
        except ValueError:
            raise InvalidDate(f"Not a calendar date: {text!r}", value=text)

    raise InvalidDate(
        f"Date must be YYYY or YYYY-MM-DD, got {text!r}",
        value=text,
    )


def optional_partial_date(text: str | PartialDate | None) -> PartialDate | None:
    if text is None:
        return None
    if isinstance(text, str) and not text.strip():
        return None
    return parse_partial_date(text)


def normalize_date_text(text: str | None) -> str | None:
    """Canonical storage form of a date string (or None)."""
    parsed = optional_partial_date(text)
    return str(parsed) if parsed else None


def add_months(d: date, months: int) -> date:
    # Day overflow rolls into the following month (31 May + 9 -> 3 Mar)
    index = d.month - 1 + months
    year = d.year + index // 12
    month = index % 12 + 1
    if not MINYEAR <= year <= MAXYEAR:
        raise OverflowError(f"{d.isoformat()} + {months} months is out of range")
    return date(year, month, 1) + timedelta(days=d.day - 1)


def both_full(a: PartialDate, b: PartialDate) -> bool:
    return a.precision == FULL and b.precision == FULL
