from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from .months import Month


ValueLever = str


VALUE_LEVERS: Tuple[ValueLever, ...] = (
    "Conversion",
    "Average Loan Size",
    "Interest Rate",
    "Customer Acquisition",
    "Customer Retention",
    "Cost Reduction",
    "Compliance/Risk Mitigation",
    "BAU obligations",
)

DEFAULT_DAYS_PER_MONTH = 20
DEFAULT_HORIZON_MONTHS = 12

ZERO_EFFORT_UNPLACED = "unplaced"
ZERO_EFFORT_FIRST_AVAILABLE = "first_available_month"
ZERO_EFFORT_POLICIES = (ZERO_EFFORT_UNPLACED, ZERO_EFFORT_FIRST_AVAILABLE)

STATUS_DONE = "done"
STATUS_UNSCHEDULED = "unscheduled"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class Initiative:
    """Unit of prioritized work, already normalized at the input boundary."""

    id: str
    name: str
    effort: float
    value_lever: ValueLever = ""
    uplift: float = 0.0
    confidence: float = 0.0
    start_month: Optional[Month] = None
    deadline_month: Optional[Month] = None
    is_mandatory: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def has_deadline(self) -> bool:
        return self.deadline_month is not None


@dataclass(frozen=True)
class CapacityRecord:
    month: Month
    available_days: float


@dataclass(frozen=True)
class ScheduledInitiative:
    initiative: Initiative
    completion_month: Optional[Month]
    deadline_missed: bool
    start_month: Optional[Month] = None
    status: str = STATUS_UNSCHEDULED
    priority_score: float = 0.0
    allocations: Dict[Month, float] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.initiative.id


@dataclass(frozen=True)
class ScheduleResult:
    scheduled: Tuple[ScheduledInitiative, ...]
    total_available_days: float
    total_consumed_days: float

    def deadline_misses(self) -> Tuple[ScheduledInitiative, ...]:
        return tuple(item for item in self.scheduled if item.deadline_missed)

    def by_id(self) -> Dict[str, ScheduledInitiative]:
        return {item.id: item for item in self.scheduled}


@dataclass(frozen=True)
class MonthlyLoad:
    month: Month
    available_days: float
    total_load: float
    mandatory_load: float = 0.0
    optional_load: float = 0.0

    @property
    def over_capacity(self) -> bool:
        return self.total_load > self.available_days


@dataclass(frozen=True)
class PlanningConfig:
    planning_start: date
    horizon_months: int = DEFAULT_HORIZON_MONTHS
    default_days_per_month: float = DEFAULT_DAYS_PER_MONTH
    zero_effort_policy: str = ZERO_EFFORT_UNPLACED
    logging_level: str = "INFO"

    def first_month(self) -> Month:
        return Month.from_date(self.planning_start)
