from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ..modules.risk import risk_service
from ..modules.risk.catalog import RiskFactorCatalog
from ..modules.risk.models import Opportunity, RiskCategoryEntry, as_utc
from ..repositories.opportunity_snapshot_repo import get_opportunity_repo

router = APIRouter(tags=["risk"])


class RadarRequest(BaseModel):
    opportunities: list[Opportunity] = Field(default_factory=list)
    now: datetime | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


class EvaluateRequest(BaseModel):
    opportunity: Opportunity
    now: datetime | None = None


class MitigationRequest(BaseModel):
    riskFactor: RiskCategoryEntry
    category: str | None = None


class DashboardRequest(BaseModel):
    riskFactors: list[RiskCategoryEntry] = Field(default_factory=list)


def _at(now: datetime | None) -> datetime | None:
    return as_utc(now) if now is not None else None


@router.get("/radar")
def get_radar(
    limit: int | None = Query(default=None, ge=1, le=500),
    now: datetime | None = None,
):
    return risk_service.radar_for_provider(get_opportunity_repo(), now=_at(now), limit=limit)


@router.post("/radar")
def post_radar(body: RadarRequest):
    return risk_service.compute_radar(body.opportunities, now=_at(body.now), limit=body.limit)


@router.get("/opportunities/{opportunity_id}")
def get_opportunity_risk(opportunity_id: str, now: datetime | None = None):
    opp = get_opportunity_repo().get(opportunity_id)
    if not opp:
        raise HTTPException(status_code=404, detail={"error": "Not Found", "message": "Opportunity not found"})
    return {"riskFactor": risk_service.evaluate_one(opp, now=_at(now))}


@router.post("/evaluate")
def post_evaluate(body: EvaluateRequest):
    return {"riskFactor": risk_service.evaluate_one(body.opportunity, now=_at(body.now))}


@router.post("/mitigation")
async def post_mitigation(body: MitigationRequest):
    return await risk_service.recommend_mitigation(body.riskFactor, category=body.category)


@router.post("/dashboard")
def post_dashboard(body: DashboardRequest):
    return risk_service.dashboard_summary(body.riskFactors)


@router.get("/catalog")
def get_catalog():
    return {"categories": RiskFactorCatalog.as_dict()}
