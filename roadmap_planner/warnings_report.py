"""
Capacity warnings for a computed roadmap.

Turns engine output into findings the caller can surface:
- Over-capacity months (scheduled load above available days)
- Initiatives delivered after their deadline
- Initiatives that could not be scheduled within the horizon
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .models import STATUS_UNSCHEDULED, MonthlyLoad, ScheduledInitiative


@dataclass
class CapacityWarning:
    """Month whose scheduled load exceeds its available days."""
    month: str
    available_days: float
    total_load: float
    excess_days: float
    severity: str  # "high", "medium", "low"


@dataclass
class DeliveryWarning:
    """Initiative that is late or missing from the roadmap."""
    initiative_id: str
    name: str
    deadline_month: Optional[str]
    completion_month: Optional[str]
    months_late: Optional[int]
    is_mandatory: bool
    reason: str


def _severity(load: float, available: float) -> str:
    if available <= 0:
        return "high"
    ratio = load / available
    if ratio >= 1.5:
        return "high"
    if ratio >= 1.2:
        return "medium"
    return "low"


class WarningReport:
    """Collects capacity and delivery warnings for one planning run."""

    def __init__(
        self,
        scheduled: Iterable[ScheduledInitiative],
        monthly_load: Iterable[MonthlyLoad],
    ):
        self.scheduled = list(scheduled)
        self.monthly_load = list(monthly_load)

        self.capacity_warnings: List[CapacityWarning] = []
        self.delivery_warnings: List[DeliveryWarning] = []

    def analyze(self) -> Dict[str, object]:
        self.capacity_warnings = self._over_capacity()
        self.delivery_warnings = self._deliveries()
        return {
            "capacity": [self._capacity_to_dict(w) for w in self.capacity_warnings],
            "delivery": [self._delivery_to_dict(w) for w in self.delivery_warnings],
            "summary": self._generate_summary(),
        }

    def _over_capacity(self) -> List[CapacityWarning]:
        warnings: List[CapacityWarning] = []
        for summary in self.monthly_load:
            if not summary.over_capacity:
                continue
            warnings.append(CapacityWarning(
                month=str(summary.month),
                available_days=summary.available_days,
                total_load=summary.total_load,
                excess_days=round(summary.total_load - summary.available_days, 2),
                severity=_severity(summary.total_load, summary.available_days),
            ))
        return warnings

    def _deliveries(self) -> List[DeliveryWarning]:
        warnings: List[DeliveryWarning] = []
        for item in self.scheduled:
            initiative = item.initiative
            deadline = initiative.deadline_month
            if item.status == STATUS_UNSCHEDULED:
                reason = "could not be scheduled within the capacity horizon"
                months_late = None
            elif item.deadline_missed and item.completion_month is not None and deadline is not None:
                months_late = deadline.months_until(item.completion_month)
                plural = "month" if months_late == 1 else "months"
                reason = f"delivered {months_late} {plural} after its deadline"
            else:
                continue
            warnings.append(DeliveryWarning(
                initiative_id=initiative.id,
                name=initiative.name,
                deadline_month=str(deadline) if deadline is not None else None,
                completion_month=str(item.completion_month) if item.completion_month else None,
                months_late=months_late,
                is_mandatory=initiative.is_mandatory,
                reason=reason,
            ))
        # mandatory work first, then the latest deliveries
        warnings.sort(key=lambda w: (0 if w.is_mandatory else 1, -(w.months_late or 0)))
        return warnings

    def _generate_summary(self) -> Dict[str, object]:
        return {
            "over_capacity_months": len(self.capacity_warnings),
            "deadline_misses": sum(1 for w in self.delivery_warnings if w.months_late is not None),
            "unscheduled": sum(1 for w in self.delivery_warnings if w.months_late is None),
        }

    def to_markdown(self) -> str:
        lines: List[str] = ["# Capacity Warnings", ""]
        if not self.capacity_warnings and not self.delivery_warnings:
            lines.append("All initiatives fit within capacity and deadlines.")
            return "\n".join(lines) + "\n"
        lines.append("## Over-capacity months")
        lines.append("")
        if not self.capacity_warnings:
            lines.append("None.")
        for warning in self.capacity_warnings:
            lines.append(
                f"- **{warning.month}**: {warning.total_load:.1f} days planned vs "
                f"{warning.available_days:g} days available ({warning.severity})"
            )
        lines.append("")
        lines.append("## Delivery issues")
        lines.append("")
        if not self.delivery_warnings:
            lines.append("None.")
        for warning in self.delivery_warnings:
            tag = " [mandatory]" if warning.is_mandatory else ""
            lines.append(f"- **{warning.initiative_id} – {warning.name}**{tag}")
            lines.append(f"  - Reason: {warning.reason}")
            if warning.deadline_month:
                lines.append(f"  - Deadline: {warning.deadline_month}")
            if warning.completion_month:
                lines.append(f"  - Completion: {warning.completion_month}")
        return "\n".join(lines).strip() + "\n"

    @staticmethod
    def _capacity_to_dict(w: CapacityWarning) -> Dict:
        return {
            "type": "over_capacity",
            "month": w.month,
            "available_days": w.available_days,
            "total_load": w.total_load,
            "excess_days": w.excess_days,
            "severity": w.severity,
        }

    @staticmethod
    def _delivery_to_dict(w: DeliveryWarning) -> Dict:
        return {
            "type": "delivery",
            "initiative_id": w.initiative_id,
            "name": w.name,
            "deadline_month": w.deadline_month,
            "completion_month": w.completion_month,
            "months_late": w.months_late,
            "is_mandatory": w.is_mandatory,
            "reason": w.reason,
        }
