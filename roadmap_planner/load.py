from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence

from .ledger import normalize_available_days
from .models import CapacityRecord, MonthlyLoad, ScheduledInitiative
from .months import Month, inclusive_month_count

logger = logging.getLogger(__name__)

LOAD_DECIMALS = 2


def _spread_effort(item: ScheduledInitiative) -> float:
    """Per-month load for ``item`` over its [start, completion] window.

    Returns 0.0 when the item contributes nothing to the load chart.
    """
    start = item.start_month
    completion = item.completion_month
    effort = item.initiative.effort
    if start is None or completion is None:
        return 0.0
    if not effort > 0:
        return 0.0
    duration = inclusive_month_count(start, completion)
    if duration <= 0:
        logger.warning(
            "initiative %s has start %s after completion %s; skipping its load",
            item.id,
            start,
            completion,
        )
        return 0.0
    return effort / max(duration, 1)


def aggregate(
    schedule_results: Iterable[ScheduledInitiative],
    capacity_records: Sequence[CapacityRecord],
) -> List[MonthlyLoad]:
    """Monthly scheduled load, one entry per capacity record in input order.

    Each scheduled item's effort is spread evenly over the months between its
    start and completion inclusive. This is independent of the ledger, which
    tracks what could be packed rather than what is running concurrently.
    Available days are rounded and clamped exactly as the ledger books them.
    """
    available: "OrderedDict[Month, float]" = OrderedDict()
    for record in capacity_records:
        available[record.month] = normalize_available_days(float(record.available_days))
    totals: Dict[Month, float] = {month: 0.0 for month in available}
    mandatory: Dict[Month, float] = {month: 0.0 for month in available}

    for item in schedule_results:
        per_month = _spread_effort(item)
        if per_month <= 0:
            continue
        for month in available:
            if item.start_month <= month <= item.completion_month:  # type: ignore[operator]
                totals[month] += per_month
                if item.initiative.is_mandatory:
                    mandatory[month] += per_month

    summaries: List[MonthlyLoad] = []
    for month, days in available.items():
        total = totals[month]
        mandatory_load = mandatory[month]
        summaries.append(
            MonthlyLoad(
                month=month,
                available_days=days,
                total_load=round(total, LOAD_DECIMALS),
                mandatory_load=round(mandatory_load, LOAD_DECIMALS),
                optional_load=round(total - mandatory_load, LOAD_DECIMALS),
            )
        )
    return summaries


def over_capacity_months(summaries: Iterable[MonthlyLoad]) -> List[MonthlyLoad]:
    return [summary for summary in summaries if summary.over_capacity]
