from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.main import create_app
from app.modules.risk import risk_service
from app.modules.risk.catalog import RiskFactorCatalog
from app.modules.risk.generators import HttpStrategyGenerator
from app.modules.risk.mitigation import MitigationStrategyResolver
from app.modules.risk.models import Opportunity
from app.repositories.opportunity_snapshot_repo import (
    InMemoryOpportunityRepo,
    load_seed_file,
    parse_opportunities,
)
from app.routers import risk as risk_router

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def _opp_json(id: str, *, stage: str = "PROPOSE", idle: int = 1, close_in: int | None = 90, probability: int | None = 50):
    out = {
        "id": id,
        "name": f"Deal {id}",
        "amount": 12000,
        "stage": stage,
        "updatedAt": _iso(NOW - timedelta(days=idle)),
        "probability": probability,
    }
    if close_in is not None:
        out["closeDate"] = _iso(NOW + timedelta(days=close_in))
    return out


def _client() -> TestClient:
    return TestClient(create_app())


def test_post_radar_ranks_and_filters():
    r = _client().post(
        "/api/risk/radar",
        json={
            "now": _iso(NOW),
            "opportunities": [
                _opp_json("ok"),
                _opp_json("idle", idle=10),
                _opp_json("stalled", stage="DISCOVER", idle=20, close_in=100, probability=15),
                _opp_json("lost", stage="CLOSE_LOST", idle=100, close_in=None, probability=None),
            ],
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["evaluated"] == 4
    assert [(e["rank"], e["opportunityId"], e["riskScore"]) for e in body["data"]] == [
        (1, "stalled", 6),
        (2, "idle", 3),
        (3, "lost", 3),
    ]
    assert body["data"][0]["riskReasons"] == [
        "No activity for 7+ days",
        "Discovery stage stalled",
        "Low probability",
    ]


def test_post_radar_rejects_out_of_range_probability():
    r = _client().post("/api/risk/radar", json={"opportunities": [_opp_json("x", probability=140)]})
    assert r.status_code == 422
    assert r.headers.get("content-type", "").startswith("application/problem+json")


def test_get_radar_uses_snapshot_provider(monkeypatch):
    repo = InMemoryOpportunityRepo(
        [
            Opportunity.model_validate(_opp_json("a", probability=5)),
            Opportunity.model_validate(_opp_json("b", idle=10)),
            Opportunity.model_validate(_opp_json("c")),
        ]
    )
    monkeypatch.setattr(risk_router, "get_opportunity_repo", lambda: repo)

    r = _client().get("/api/risk/radar", params={"now": _iso(NOW), "limit": 1})
    assert r.status_code == 200
    assert [e["opportunityId"] for e in r.json()["data"]] == ["b"]

    r = _client().get("/api/risk/opportunities/a", params={"now": _iso(NOW)})
    assert r.status_code == 200
    assert r.json()["riskFactor"]["riskReasons"] == ["Low probability"]

    r = _client().get("/api/risk/opportunities/c", params={"now": _iso(NOW)})
    assert r.json() == {"riskFactor": None}

    r = _client().get("/api/risk/opportunities/missing")
    assert r.status_code == 404
    assert r.json()["detail"] == "Opportunity not found"


def test_evaluate_without_close_date_flags_approaching():
    r = _client().post(
        "/api/risk/evaluate",
        json={"now": _iso(NOW), "opportunity": _opp_json("d", stage="DISCOVER", idle=0, close_in=None, probability=None)},
    )
    assert r.status_code == 200
    rf = r.json()["riskFactor"]
    assert rf["daysToClose"] == 0
    assert rf["riskReasons"] == ["Close date approaching"]


def test_mitigation_endpoint_falls_back_when_generator_is_down(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    resolver = MitigationStrategyResolver(
        HttpStrategyGenerator("http://generator.test/x", transport=httpx.MockTransport(handler))
    )
    monkeypatch.setattr(risk_service, "get_resolver", lambda: resolver)

    r = _client().post(
        "/api/risk/mitigation",
        json={
            "riskFactor": {
                "id": "rf_7",
                "name": "Budget at risk",
                "category": "financial",
                "impact": "critical",
                "weight": 0.9,
                "isMitigatable": False,
                "mitigationStrategy": "Offer phased billing",
            }
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["strategies"] == ["Offer phased billing", *RiskFactorCatalog.get("financial")]
    assert body["advisory"] is True
    assert body["riskFactorId"] == "rf_7"
    assert body["category"] == "financial"


def test_mitigation_endpoint_uses_generator_result(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["riskFactors"][0]["category"] == "engagement"
        return httpx.Response(200, json={"strategies": ["Send a recap email"]})

    resolver = MitigationStrategyResolver(
        HttpStrategyGenerator("http://generator.test/x", transport=httpx.MockTransport(handler))
    )
    monkeypatch.setattr(risk_service, "get_resolver", lambda: resolver)

    r = _client().post("/api/risk/mitigation", json={"riskFactor": {"category": "engagement"}})
    assert r.status_code == 200
    assert r.json()["strategies"] == ["Send a recap email"]
    assert r.json()["advisory"] is False


def test_dashboard_counts_by_impact():
    r = _client().post(
        "/api/risk/dashboard",
        json={
            "riskFactors": [
                {"category": "timing", "impact": "critical"},
                {"category": "financial", "impact": "critical"},
                {"category": "technical", "impact": "low"},
                {"category": "engagement", "impact": "High"},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json() == {"critical": 2, "high": 1, "medium": 0, "low": 1, "total": 4}


def test_catalog_endpoint():
    r = _client().get("/api/risk/catalog")
    assert r.status_code == 200
    assert r.json()["categories"]["technical"] == RiskFactorCatalog.get("technical")


def test_analytics_mitigation_strategies_contract():
    c = _client()

    r = c.post("/api/analytics/mitigation-strategies", json={})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Risk factors array is required"}

    r = c.post("/api/analytics/mitigation-strategies", json={"riskFactors": "nope"})
    assert r.status_code == 400

    r = c.post(
        "/api/analytics/mitigation-strategies",
        json={"riskFactors": [{"category": "competition", "mitigationStrategy": "Win on support"}]},
    )
    assert r.status_code == 200
    assert r.json() == {
        "success": True,
        "strategies": [
            "Win on support",
            "Develop competitive differentiation strategy",
            "Schedule executive meetings to reinforce value",
        ],
    }


def test_seed_file_loading_skips_invalid_rows(tmp_path):
    p = tmp_path / "opps.json"
    p.write_text(
        json.dumps(
            {
                "opportunities": [
                    _opp_json("good"),
                    {"id": "bad", "stage": "NOT_A_STAGE", "updatedAt": _iso(NOW)},
                ]
            }
        ),
        encoding="utf-8",
    )
    opps = load_seed_file(p)
    assert [o.id for o in opps] == ["good"]


def test_radar_limit_zero_is_422_on_get_and_post(monkeypatch):
    monkeypatch.setattr(risk_router, "get_opportunity_repo", lambda: InMemoryOpportunityRepo())
    client = _client()

    for r in (
        client.get("/api/risk/radar", params={"limit": 0}),
        client.post("/api/risk/radar", json={"opportunities": [], "limit": 0}),
        client.get("/api/risk/radar", params={"limit": 501}),
    ):
        assert r.status_code == 422
        assert r.headers.get("content-type", "").startswith("application/problem+json")
        assert any(e["path"].endswith("limit") for e in r.json()["errors"])


def test_opportunity_id_must_not_be_empty():
    for bad in (None, "", "   "):
        with pytest.raises(ValidationError):
            Opportunity.model_validate({**_opp_json("x"), "id": bad})

    r = _client().post("/api/risk/evaluate", json={"opportunity": {**_opp_json("x"), "id": ""}})
    assert r.status_code == 422


def test_seed_rows_without_id_are_skipped():
    rows = [_opp_json("keep"), {**_opp_json("gone"), "id": None}, {**_opp_json("blank"), "id": ""}]
    assert [o.id for o in parse_opportunities(rows)] == ["keep"]


def test_duplicate_ids_keep_last_row():
    first = Opportunity.model_validate(_opp_json("dup", probability=50))
    second = Opportunity.model_validate(_opp_json("dup", probability=5))
    repo = InMemoryOpportunityRepo([first, second, Opportunity.model_validate(_opp_json("other"))])

    assert [o.id for o in repo.list_opportunities()] == ["dup", "other"]
    assert repo.get("dup").probability == 5


def test_sample_seed_file_loads():
    sample = Path(__file__).resolve().parents[1] / "data" / "opportunities.sample.json"
    opps = load_seed_file(sample)
    assert [o.id for o in opps] == [
        "opp_acme_renewal",
        "opp_globex_new",
        "opp_initech_upsell",
        "opp_umbrella_lost",
    ]
