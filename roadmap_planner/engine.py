from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .io_utils import capacity_records_from_df, normalize_capacity, normalize_initiatives
from .ledger import EPSILON, CapacityLedger
from .load import aggregate
from .models import (
    STATUS_DONE,
    STATUS_SKIPPED,
    STATUS_UNSCHEDULED,
    ZERO_EFFORT_FIRST_AVAILABLE,
    ZERO_EFFORT_POLICIES,
    ZERO_EFFORT_UNPLACED,
    CapacityRecord,
    Initiative,
    MonthlyLoad,
    PlanningConfig,
    ScheduledInitiative,
    ScheduleResult,
)
from .months import Month, parse_optional_month
from .priority import rank_initiatives

logger = logging.getLogger(__name__)

ROADMAP_COLUMNS = [
    "id",
    "name",
    "value_lever",
    "is_mandatory",
    "priority_score",
    "effort",
    "start_constraint",
    "deadline_month",
    "start_month",
    "completion_month",
    "duration_months",
    "deadline_missed",
    "status",
]

LOAD_COLUMNS = [
    "month",
    "available_days",
    "total_load",
    "mandatory_load",
    "optional_load",
    "over_capacity",
]


class UnscheduledInitiativesError(RuntimeError):
    def __init__(self, items: Sequence[ScheduledInitiative]) -> None:
        ids = ", ".join(item.id for item in items)
        super().__init__(f"{len(items)} initiative(s) unscheduled or late: {ids}")
        self.items = tuple(items)


def _unscheduled(initiative: Initiative, score: float, allocations: Optional[Dict[Month, float]] = None) -> ScheduledInitiative:
    return ScheduledInitiative(
        initiative=initiative,
        completion_month=None,
        deadline_missed=initiative.has_deadline(),
        start_month=None,
        status=STATUS_UNSCHEDULED,
        priority_score=score,
        allocations=dict(allocations or {}),
    )


def _deadline_missed(initiative: Initiative, completion: Optional[Month]) -> bool:
    if initiative.deadline_month is None:
        return False
    if completion is None:
        return True
    return completion > initiative.deadline_month


def _eligible_start_index(initiative: Initiative, ledger: CapacityLedger) -> Optional[int]:
    if initiative.start_month is None:
        return 0
    return ledger.first_index_on_or_after(initiative.start_month)


def _zero_effort(
    initiative: Initiative,
    score: float,
    ledger: CapacityLedger,
    zero_effort_policy: str,
) -> ScheduledInitiative:
    """Zero-cost initiatives never consume capacity.

    Under the default policy they are left off the roadmap and never miss a
    deadline. ``first_available_month`` pins them to the earliest eligible
    month instead, where the usual deadline check applies. With no eligible
    month they are unscheduled like any other item.
    """
    completion: Optional[Month] = None
    if zero_effort_policy == ZERO_EFFORT_FIRST_AVAILABLE:
        idx = _eligible_start_index(initiative, ledger)
        if idx is None:
            logger.warning(
                "initiative %s start month %s is after the capacity horizon",
                initiative.id,
                initiative.start_month,
            )
            return _unscheduled(initiative, score)
        completion = ledger.month_at(idx)
    return ScheduledInitiative(
        initiative=initiative,
        completion_month=completion,
        deadline_missed=completion is not None and _deadline_missed(initiative, completion),
        start_month=completion,
        status=STATUS_SKIPPED,
        priority_score=score,
    )


def _schedule_one(
    initiative: Initiative,
    score: float,
    ledger: CapacityLedger,
    zero_effort_policy: str,
) -> ScheduledInitiative:
    effort = initiative.effort
    if not math.isfinite(effort):
        logger.warning("initiative %s has non-numeric effort %r; leaving it unscheduled", initiative.id, effort)
        return _unscheduled(initiative, score)

    if effort <= 0:
        return _zero_effort(initiative, score, ledger, zero_effort_policy)

    start_idx = _eligible_start_index(initiative, ledger)
    if start_idx is None:
        logger.warning(
            "initiative %s start month %s is after the capacity horizon",
            initiative.id,
            initiative.start_month,
        )
        return _unscheduled(initiative, score)

    remaining = effort
    allocations: Dict[Month, float] = {}
    start_month: Optional[Month] = None
    completion = None
    for idx in range(start_idx, len(ledger)):
        available = ledger.remaining_at(idx)
        take = min(remaining, available)
        if take <= 0:
            continue
        ledger.consume_at(idx, take)
        month = ledger.month_at(idx)
        allocations[month] = take
        if start_month is None:
            start_month = month
        remaining -= take
        if remaining <= EPSILON:
            completion = month
            break

    if completion is None:
        # capacity already taken by the partial walk stays consumed
        logger.debug(
            "initiative %s ran out of horizon with %.2f days left after consuming %.2f",
            initiative.id,
            remaining,
            effort - remaining,
        )
        return _unscheduled(initiative, score, allocations)

    return ScheduledInitiative(
        initiative=initiative,
        completion_month=completion,
        deadline_missed=_deadline_missed(initiative, completion),
        start_month=start_month,
        status=STATUS_DONE,
        priority_score=score,
        allocations=allocations,
    )


def schedule(
    ranked: Sequence[Tuple[float, Initiative]],
    ledger: CapacityLedger,
    *,
    zero_effort_policy: str = ZERO_EFFORT_UNPLACED,
) -> List[ScheduledInitiative]:
    """Greedily allocate each initiative's effort in the given order.

    ``ranked`` is the output of :func:`rank_initiatives`; earlier entries get
    first claim on capacity. The ledger is mutated and must not be shared
    with another run. Results come back in processing order.
    """
    if zero_effort_policy not in ZERO_EFFORT_POLICIES:
        raise ValueError(f"unsupported zero_effort_policy '{zero_effort_policy}'")
    if ledger.is_empty():
        logger.warning("no capacity months available; %d initiative(s) left unscheduled", len(ranked))
        return [_unscheduled(initiative, score) for score, initiative in ranked]
    return [_schedule_one(initiative, score, ledger, zero_effort_policy) for score, initiative in ranked]


def schedule_initiatives(
    initiatives: Iterable[Initiative],
    capacity_records: Iterable[CapacityRecord],
    *,
    zero_effort_policy: str = ZERO_EFFORT_UNPLACED,
) -> ScheduleResult:
    ranked = rank_initiatives(initiatives)
    ledger = CapacityLedger.build(capacity_records)
    scheduled = schedule(ranked, ledger, zero_effort_policy=zero_effort_policy)
    result = ScheduleResult(
        scheduled=tuple(scheduled),
        total_available_days=ledger.total_available(),
        total_consumed_days=ledger.total_consumed(),
    )
    logger.info(
        "scheduled %d/%d initiatives over %d month(s); %d deadline miss(es)",
        sum(1 for item in scheduled if item.status == STATUS_DONE),
        len(scheduled),
        len(ledger),
        len(result.deadline_misses()),
    )
    return result


def initiatives_from_df(df: pd.DataFrame) -> List[Initiative]:
    initiatives: List[Initiative] = []
    for row in df.itertuples(index=False):
        created_at = getattr(row, "created_at", None)
        updated_at = getattr(row, "updated_at", None)
        initiatives.append(
            Initiative(
                id=str(row.id),
                name=str(row.name),
                value_lever="" if pd.isna(row.value_lever) else str(row.value_lever),
                uplift=float(row.uplift),
                confidence=float(row.confidence),
                effort=float(row.effort),
                start_month=parse_optional_month(row.start_month),
                deadline_month=parse_optional_month(row.deadline_month),
                is_mandatory=bool(row.is_mandatory),
                created_at=None if created_at is None or pd.isna(created_at) else str(created_at),
                updated_at=None if updated_at is None or pd.isna(updated_at) else str(updated_at),
            )
        )
    return initiatives


def _optional_str(value: Optional[Month]) -> Optional[str]:
    return str(value) if value is not None else None


def roadmap_frame(result: ScheduleResult) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for item in result.scheduled:
        initiative = item.initiative
        duration = None
        if item.start_month is not None and item.completion_month is not None:
            duration = item.start_month.months_until(item.completion_month) + 1
        rows.append(
            {
                "id": initiative.id,
                "name": initiative.name,
                "value_lever": initiative.value_lever,
                "is_mandatory": initiative.is_mandatory,
                "priority_score": round(item.priority_score, 4),
                "effort": initiative.effort,
                "start_constraint": _optional_str(initiative.start_month),
                "deadline_month": _optional_str(initiative.deadline_month),
                "start_month": _optional_str(item.start_month),
                "completion_month": _optional_str(item.completion_month),
                "duration_months": duration,
                "deadline_missed": item.deadline_missed,
                "status": item.status,
            }
        )
    df = pd.DataFrame(rows, columns=ROADMAP_COLUMNS)
    df["duration_months"] = pd.array(list(df["duration_months"]), dtype="Int64")
    return df


def load_frame(summaries: Sequence[MonthlyLoad]) -> pd.DataFrame:
    rows = [
        {
            "month": str(summary.month),
            "available_days": summary.available_days,
            "total_load": summary.total_load,
            "mandatory_load": summary.mandatory_load,
            "optional_load": summary.optional_load,
            "over_capacity": summary.over_capacity,
        }
        for summary in summaries
    ]
    return pd.DataFrame(rows, columns=LOAD_COLUMNS)


def plan(
    initiatives_df: pd.DataFrame,
    capacity_df: pd.DataFrame,
    cfg: PlanningConfig,
    *,
    strict: bool = False,
) -> Tuple[pd.DataFrame, pd.DataFrame, ScheduleResult]:
    """Schedule raw or loaded frames; both are normalized again before use."""
    initiatives = initiatives_from_df(normalize_initiatives(initiatives_df))
    capacity = capacity_records_from_df(normalize_capacity(capacity_df))
    result = schedule_initiatives(initiatives, capacity, zero_effort_policy=cfg.zero_effort_policy)
    if strict:
        failing = [
            item for item in result.scheduled if item.status == STATUS_UNSCHEDULED or item.deadline_missed
        ]
        if failing:
            raise UnscheduledInitiativesError(failing)
    summaries = aggregate(result.scheduled, capacity)
    load_df = load_frame(summaries)
    load_df.attrs["monthly_load"] = summaries
    return roadmap_frame(result), load_df, result
