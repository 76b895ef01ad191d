from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Stage(str, Enum):
    """Pipeline stages, in progression order."""
    DISCOVER = "DISCOVER"
    EVALUATE = "EVALUATE"
    PROPOSE = "PROPOSE"
    NEGOTIATE = "NEGOTIATE"
    CLOSE_WON = "CLOSE_WON"
    CLOSE_LOST = "CLOSE_LOST"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.CLOSE_WON, Stage.CLOSE_LOST)


class RiskCategory(str, Enum):
    ENGAGEMENT = "engagement"
    COMPETITION = "competition"
    STAKEHOLDER = "stakeholder"
    TIMING = "timing"
    TECHNICAL = "technical"
    FINANCIAL = "financial"

    @classmethod
    def parse(cls, value: Any) -> RiskCategory | None:
        if isinstance(value, cls):
            return value
        v = str(value or "").strip().lower()
        try:
            return cls(v)
        except ValueError:
            return None


class RiskImpact(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def as_utc(dt: datetime) -> datetime:
    # Naive timestamps from the pipeline are UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Opportunity(BaseModel):
    """
    Read-only opportunity snapshot as supplied by the pipeline.

    Extra pipeline fields (name, amount, dealType, ...) are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    stage: Stage
    updatedAt: datetime
    closeDate: datetime | None = None
    probability: int | None = Field(default=None, ge=0, le=100)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        oid = str(v if v is not None else "").strip()
        if not oid:
            raise ValueError("opportunity id is required")
        return oid

    @field_validator("stage", mode="before")
    @classmethod
    def _upper_stage(cls, v: Any) -> Any:
        return str(v).strip().upper() if isinstance(v, str) else v

    @field_validator("updatedAt", "closeDate")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None


# Score thresholds for the radar colour tiers.
TIER_HIGH_MIN_SCORE = 5
TIER_ELEVATED_MIN_SCORE = 3


@dataclass(frozen=True)
class RiskFactor:
    """
    Derived, per-call risk record for one opportunity. Never persisted.
    """
    opportunity: Opportunity
    risk_score: int
    risk_reasons: tuple[str, ...]
    days_since_update: int
    days_to_close: int

    @property
    def tier(self) -> str:
        if self.risk_score >= TIER_HIGH_MIN_SCORE:
            return "high"
        if self.risk_score >= TIER_ELEVATED_MIN_SCORE:
            return "elevated"
        return "watch"

    def to_api(self) -> dict[str, Any]:
        return {
            "opportunityId": self.opportunity.id,
            "stage": self.opportunity.stage.value,
            "riskScore": self.risk_score,
            "riskReasons": list(self.risk_reasons),
            "daysSinceUpdate": self.days_since_update,
            "daysToClose": self.days_to_close,
            "tier": self.tier,
        }


class RiskCategoryEntry(BaseModel):
    """
    A categorized risk as shown on the mitigation dashboard.

    `impact` and `weight` are display metadata only; neither feeds the score.
    `category` stays a plain string so an unrecognized value can reach the
    catalog and resolve to no templates.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    description: str = ""
    category: str
    impact: RiskImpact = RiskImpact.MEDIUM
    weight: float = Field(default=0.5, ge=0.0, le=1.0)
    isMitigatable: bool = True
    mitigationStrategy: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _norm_category(cls, v: Any) -> str:
        if isinstance(v, RiskCategory):
            return v.value
        return str(v or "").strip().lower()

    @field_validator("impact", mode="before")
    @classmethod
    def _norm_impact(cls, v: Any) -> Any:
        return str(v).strip().lower() if isinstance(v, str) else v

    @field_validator("mitigationStrategy")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @property
    def category_enum(self) -> RiskCategory | None:
        return RiskCategory.parse(self.category)

    def to_generator_summary(self) -> dict[str, Any]:
        """Outbound summary for strategy generators."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "impact": self.impact.value,
            "weight": self.weight,
            "isMitigatable": self.isMitigatable,
            "mitigationStrategy": self.mitigationStrategy,
        }
