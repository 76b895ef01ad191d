from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from ..modules.risk.generators import builtin_strategies
from ..modules.risk.models import RiskCategoryEntry
from ..observability.logging import get_logger

router = APIRouter(tags=["analytics"])
log = get_logger("analytics")


@router.post("/mitigation-strategies")
def mitigation_strategies(body: Any = Body(default=None)):
    """
    In-process strategy generator over HTTP.

    Keeps the legacy `{success, strategies}` / `{success, error}` envelope
    that remote callers of the generator contract expect.
    """
    raw = (body or {}).get("riskFactors") if isinstance(body, dict) else None
    if not isinstance(raw, list):
        return ORJSONResponse(
            status_code=400,
            content={"success": False, "error": "Risk factors array is required"},
        )

    try:
        entries = [RiskCategoryEntry.model_validate(rf) for rf in raw]
    except ValidationError as e:
        log.warning("mitigation_strategies_invalid_body", errors=e.error_count())
        return ORJSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid risk factor"},
        )

    return {"success": True, "strategies": builtin_strategies(entries)}
