from __future__ import annotations

import math
from datetime import datetime, timedelta

from .models import Opportunity, RiskFactor, Stage, as_utc

_DAY = timedelta(days=1)

REASON_NO_ACTIVITY = "No activity for 7+ days"
REASON_DISCOVERY_STALLED = "Discovery stage stalled"
REASON_EVALUATION_SLOW = "Evaluation taking too long"
REASON_CLOSE_APPROACHING = "Close date approaching"
REASON_LOW_PROBABILITY = "Low probability"


def days_since(updated_at: datetime, now: datetime) -> int:
    return math.floor((as_utc(now) - as_utc(updated_at)) / _DAY)


def days_until(close_date: datetime | None, now: datetime) -> int:
    # A missing close date counts as due today.
    if close_date is None:
        return 0
    return math.ceil((as_utc(close_date) - as_utc(now)) / _DAY)


def evaluate(opportunity: Opportunity, now: datetime) -> RiskFactor | None:
    """
    Score one opportunity against the time- and stage-based rules.

    Rules run in a fixed order and each one that fires appends its reason, so
    `risk_reasons` reads in evaluation order rather than by weight. Returns
    None when nothing fires.
    """
    since = days_since(opportunity.updatedAt, now)
    to_close = days_until(opportunity.closeDate, now)

    score = 0
    reasons: list[str] = []

    if since > 7:
        reasons.append(REASON_NO_ACTIVITY)
        score += 3
    if opportunity.stage == Stage.DISCOVER and since > 14:
        reasons.append(REASON_DISCOVERY_STALLED)
        score += 2
    if opportunity.stage == Stage.EVALUATE and since > 21:
        reasons.append(REASON_EVALUATION_SLOW)
        score += 2
    if to_close < 30 and not opportunity.stage.is_terminal:
        reasons.append(REASON_CLOSE_APPROACHING)
        score += 2
    if opportunity.probability is not None and opportunity.probability < 20:
        reasons.append(REASON_LOW_PROBABILITY)
        score += 1

    if score <= 0:
        return None
    return RiskFactor(
        opportunity=opportunity,
        risk_score=score,
        risk_reasons=tuple(reasons),
        days_since_update=since,
        days_to_close=to_close,
    )
