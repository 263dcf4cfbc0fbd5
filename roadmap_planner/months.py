from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

MONTH_FMT = "%Y-%m"

MonthLike = Union["Month", date, datetime, str]


@dataclass(frozen=True, order=True)
class Month:
    """Calendar month with first-of-month semantics."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> "Month":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, value: MonthLike) -> "Month":
        if isinstance(value, Month):
            return value
        if isinstance(value, (date, datetime)):
            return cls.from_date(value)
        if not isinstance(value, str):
            raise TypeError(f"cannot interpret {value!r} as a month")
        text = value.strip()
        try:
            if len(text) == 7:
                return cls.from_date(datetime.strptime(text, MONTH_FMT))
            return cls.from_date(dateparser.isoparse(text))
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"invalid month value: {value!r}") from exc

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def shift(self, months: int) -> "Month":
        return Month.from_date(self.first_day() + relativedelta(months=months))

    def months_until(self, other: "Month") -> int:
        """Signed number of month steps from ``self`` to ``other``."""
        return (other.year - self.year) * 12 + (other.month - self.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def parse_optional_month(value: object) -> Optional[Month]:
    if value is None:
        return None
    if isinstance(value, float) and value != value:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    return Month.parse(value)  # type: ignore[arg-type]


def next_n_months(n: int, start: MonthLike) -> List[Month]:
    if n < 0:
        raise ValueError("month count must not be negative")
    first = Month.parse(start)
    return [first.shift(offset) for offset in range(n)]


def inclusive_month_count(start: Month, end: Month) -> int:
    return start.months_until(end) + 1
