from __future__ import annotations

from fastapi import APIRouter

from ..settings import settings

router = APIRouter()


@router.get("/", tags=["health"])
def health():
    return {
        "message": "Deal Risk Engine API",
        "version": "1.0.0",
        "status": "running",
        "port": settings.port,
        "environment": settings.environment,
        "mitigationGenerator": settings.resolved_mitigation_generator,
        "endpoints": [
            "GET /api/risk/radar",
            "POST /api/risk/radar",
            "GET /api/risk/opportunities/{id}",
            "POST /api/risk/evaluate",
            "POST /api/risk/mitigation",
            "POST /api/risk/dashboard",
            "GET /api/risk/catalog",
            "POST /api/analytics/mitigation-strategies",
        ],
    }
