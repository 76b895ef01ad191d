from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable

from ...observability.logging import get_logger
from ...repositories.base_repository import OpportunitySnapshotProvider
from ...settings import settings
from .dashboard import impact_summary
from .evaluator import evaluate
from .generators import build_generator
from .mitigation import MitigationStrategyResolver
from .models import Opportunity, RiskCategory, RiskCategoryEntry
from .radar import aggregate

log = get_logger("risk")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def compute_radar(
    opportunities: Iterable[Opportunity],
    *,
    now: datetime | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    opps = list(opportunities or [])
    at = now or _now()
    ranked = aggregate(opps, at, limit=limit)
    log.info("risk_radar_computed", count=len(opps), flagged=len(ranked), limit=limit)
    return {
        "evaluatedAt": at.isoformat().replace("+00:00", "Z"),
        "evaluated": len(opps),
        "data": [{"rank": i + 1, **rf.to_api()} for i, rf in enumerate(ranked)],
    }


def radar_for_provider(
    provider: OpportunitySnapshotProvider,
    *,
    now: datetime | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    return compute_radar(provider.list_opportunities(), now=now, limit=limit)


def evaluate_one(opportunity: Opportunity, *, now: datetime | None = None) -> dict[str, Any] | None:
    rf = evaluate(opportunity, now or _now())
    return rf.to_api() if rf else None


@lru_cache(maxsize=1)
def get_resolver() -> MitigationStrategyResolver:
    return MitigationStrategyResolver(build_generator(settings))


async def recommend_mitigation(
    entry: RiskCategoryEntry,
    *,
    category: RiskCategory | str | None = None,
    resolver: MitigationStrategyResolver | None = None,
) -> dict[str, Any]:
    r = resolver or get_resolver()
    strategies = await r.resolve(entry, category)
    return {
        "riskFactorId": entry.id or None,
        "category": (category.value if isinstance(category, RiskCategory) else category) or entry.category,
        "strategies": strategies,
        # Non-mitigatable risks still get suggestions; the UI shows them as advisory.
        "advisory": not entry.isMitigatable,
    }


def dashboard_summary(entries: Iterable[RiskCategoryEntry]) -> dict[str, int]:
    return impact_summary(entries)
