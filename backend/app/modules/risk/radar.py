from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .evaluator import evaluate
from .models import Opportunity, RiskFactor


def aggregate(
    opportunities: Iterable[Opportunity],
    now: datetime,
    *,
    limit: int | None = None,
) -> list[RiskFactor]:
    """
    Build the risk radar: every opportunity with a nonzero score, highest first.

    Equal scores keep their input order (sorted() is stable), so "Risk #1, #2"
    numbering is reproducible.
    """
    flagged: list[RiskFactor] = []
    for opp in opportunities or []:
        rf = evaluate(opp, now)
        if rf is not None:
            flagged.append(rf)

    ranked = sorted(flagged, key=lambda rf: rf.risk_score, reverse=True)
    if limit is not None:
        ranked = ranked[: max(0, int(limit))]
    return ranked
