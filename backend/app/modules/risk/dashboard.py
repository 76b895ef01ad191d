from __future__ import annotations

from typing import Iterable

from .models import RiskCategoryEntry, RiskImpact


def impact_buckets(entries: Iterable[RiskCategoryEntry]) -> dict[str, list[RiskCategoryEntry]]:
    buckets: dict[str, list[RiskCategoryEntry]] = {impact.value: [] for impact in RiskImpact}
    for e in entries or []:
        buckets[e.impact.value].append(e)
    return buckets


def impact_summary(entries: Iterable[RiskCategoryEntry]) -> dict[str, int]:
    """Counts per impact tier, plus a total."""
    buckets = impact_buckets(entries)
    out = {impact: len(items) for impact, items in buckets.items()}
    out["total"] = sum(out.values())
    return out
