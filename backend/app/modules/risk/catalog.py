from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .models import RiskCategory

# Static fallback strategies, in display order. Loaded once; never mutated.
_CATALOG: Mapping[RiskCategory, tuple[str, ...]] = MappingProxyType(
    {
        RiskCategory.ENGAGEMENT: (
            "Increase touchpoint frequency and quality",
            "Conduct stakeholder engagement assessment",
            "Schedule executive check-in meeting",
        ),
        RiskCategory.COMPETITION: (
            "Develop competitive differentiation strategy",
            "Schedule executive meetings to reinforce value",
            "Prepare competitive battle cards",
        ),
        RiskCategory.STAKEHOLDER: (
            "Conduct stakeholder mapping and alignment",
            "Identify and engage new champions",
            "Schedule relationship building activities",
        ),
        RiskCategory.TIMING: (
            "Create urgency with limited-time offers",
            "Implement pilot program to accelerate decision",
            "Schedule executive meeting to address timeline",
        ),
        RiskCategory.TECHNICAL: (
            "Conduct technical deep-dive session",
            "Provide proof of concept or pilot",
            "Schedule technical validation meeting",
        ),
        RiskCategory.FINANCIAL: (
            "Prepare detailed ROI analysis",
            "Create flexible payment options",
            "Schedule CFO meeting to discuss budget",
        ),
    }
)

if set(_CATALOG) != set(RiskCategory):  # pragma: no cover
    raise RuntimeError("risk catalog must cover every RiskCategory")


class RiskFactorCatalog:
    """Category -> mitigation strategy templates."""

    @staticmethod
    def get(category: RiskCategory | str | None) -> list[str]:
        cat = RiskCategory.parse(category)
        if cat is None:
            return []
        return list(_CATALOG[cat])

    @staticmethod
    def as_dict() -> dict[str, list[str]]:
        return {cat.value: list(templates) for cat, templates in _CATALOG.items()}
