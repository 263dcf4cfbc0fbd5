from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional

from .models import CapacityRecord
from .months import Month

logger = logging.getLogger(__name__)

EPSILON = 1e-9


class CapacityInvariantError(RuntimeError):
    def __init__(self, month: Optional[Month], reason: str) -> None:
        label = str(month) if month is not None else "n/a"
        super().__init__(f"capacity ledger invariant violated in {label}: {reason}")
        self.month = month
        self.reason = reason


def normalize_available_days(value: float) -> int:
    """Round half-up to a whole number of days, clamping negatives to zero."""
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(math.floor(value + 0.5))


class CapacityLedger:
    """Remaining capacity per month for a single scheduling run.

    Months are stored as positions in a flat list so the scheduler can walk
    forward by index. Capacity only ever goes down once the ledger is built.
    """

    def __init__(self, months: List[Month], available: List[int]) -> None:
        if len(months) != len(available):
            raise ValueError("months and available capacity must have the same length")
        self._months = list(months)
        self._initial = list(available)
        self._remaining: List[float] = [float(value) for value in available]
        self._index: Dict[Month, int] = {month: idx for idx, month in enumerate(self._months)}

    @classmethod
    def build(cls, records: Iterable[CapacityRecord]) -> "CapacityLedger":
        by_month: Dict[Month, int] = {}
        for record in records:
            if record.month in by_month:
                logger.warning(
                    "duplicate capacity record for %s; keeping the later value %s",
                    record.month,
                    record.available_days,
                )
            by_month[record.month] = normalize_available_days(float(record.available_days))
        months = sorted(by_month)
        return cls(months, [by_month[month] for month in months])

    def __len__(self) -> int:
        return len(self._months)

    def is_empty(self) -> bool:
        return not self._months

    def months_in_order(self) -> List[Month]:
        return list(self._months)

    def first_index_on_or_after(self, month: Month) -> Optional[int]:
        for idx, candidate in enumerate(self._months):
            if candidate >= month:
                return idx
        return None

    def month_at(self, idx: int) -> Month:
        return self._months[idx]

    def remaining(self, month: Month) -> float:
        idx = self._index.get(month)
        if idx is None:
            return 0.0
        return self._remaining[idx]

    def remaining_at(self, idx: int) -> float:
        return self._remaining[idx]

    def consume(self, month: Month, amount: float) -> None:
        idx = self._index.get(month)
        if idx is None:
            raise CapacityInvariantError(month, "month is outside the capacity horizon")
        self.consume_at(idx, amount)

    def consume_at(self, idx: int, amount: float) -> None:
        month = self._months[idx]
        if amount < 0:
            raise CapacityInvariantError(month, f"cannot consume a negative amount ({amount})")
        remaining = self._remaining[idx]
        if amount > remaining + EPSILON:
            raise CapacityInvariantError(
                month, f"consuming {amount:.2f} days exceeds remaining {remaining:.2f}"
            )
        self._remaining[idx] = max(0.0, remaining - amount)

    def available(self, month: Month) -> int:
        idx = self._index.get(month)
        return 0 if idx is None else self._initial[idx]

    def total_available(self) -> float:
        return float(sum(self._initial))

    def total_remaining(self) -> float:
        return sum(self._remaining)

    def total_consumed(self) -> float:
        return self.total_available() - self.total_remaining()
