from __future__ import annotations

import math
from typing import Iterable, List, Tuple

from .models import Initiative


def weighted_impact(initiative: Initiative) -> float:
    # confidence is a percentage
    return initiative.uplift * initiative.confidence / 100.0


def effort_factor(effort: float) -> float:
    """Diminishing-returns penalty ``1 / (1 + ln(effort))``.

    Efforts below one day (zero, negative or non-finite values included) are
    scored as a single day so the logarithm never goes negative.
    """
    if not math.isfinite(effort) or effort < 1.0:
        effort = 1.0
    return 1.0 / (1.0 + math.log(effort))


def priority_score(initiative: Initiative) -> float:
    return weighted_impact(initiative) * effort_factor(initiative.effort) * 100.0


def _sort_key(scored: Tuple[float, Initiative]) -> Tuple[int, float]:
    score, initiative = scored
    return (0 if initiative.is_mandatory else 1, -score)


def rank_initiatives(initiatives: Iterable[Initiative]) -> List[Tuple[float, Initiative]]:
    """Return ``(score, initiative)`` pairs, mandatory first then score descending.

    ``sorted`` is stable, so initiatives with the same mandatory flag and
    score keep their input order.
    """
    scored = [(priority_score(initiative), initiative) for initiative in initiatives]
    return sorted(scored, key=_sort_key)


def sort_by_priority(initiatives: Iterable[Initiative]) -> List[Initiative]:
    return [initiative for _, initiative in rank_initiatives(initiatives)]
