from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import httpx

from ...ai.client import AiNotConfigured, AiParseError, AiUpstreamError, call_json
from ...ai.purposes import defaults_for
from ...ai.schemas import MitigationStrategiesAI
from ...settings import Settings
from .models import RiskCategory, RiskCategoryEntry


class GeneratorError(Exception):
    """A strategy generator could not produce a usable strategy list."""

    def __init__(self, reason: str, message: str | None = None, *, status_code: int | None = None):
        super().__init__(message or reason)
        self.reason = reason
        self.status_code = status_code


@dataclass(frozen=True)
class StrategyResult:
    """Either a strategy list or the error that prevented one."""
    strategies: tuple[str, ...] = ()
    error: GeneratorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, strategies: Sequence[str]) -> StrategyResult:
        return cls(strategies=tuple(strategies))

    @classmethod
    def failure(cls, error: GeneratorError) -> StrategyResult:
        return cls(error=error)


class MitigationStrategyGenerator(Protocol):
    name: str

    async def generate(self, risk_factors: Sequence[RiskCategoryEntry]) -> StrategyResult: ...


def parse_strategies_body(data: Any) -> StrategyResult:
    """
    Validate a `{"strategies": [str, ...]}` body.
    """
    if not isinstance(data, dict):
        return StrategyResult.failure(GeneratorError("invalid_body", "response body is not a JSON object"))
    if "strategies" not in data:
        return StrategyResult.failure(GeneratorError("missing_strategies", "response has no strategies field"))
    strategies = data.get("strategies")
    if not isinstance(strategies, list):
        return StrategyResult.failure(GeneratorError("invalid_strategies", "strategies is not a list"))
    if not all(isinstance(s, str) for s in strategies):
        return StrategyResult.failure(GeneratorError("invalid_strategies", "strategies must be strings"))
    return StrategyResult.success(strategies)


class HttpStrategyGenerator:
    """
    Remote generator: POST {"riskFactors": [...]} -> {"strategies": [...]}.
    """

    name = "http"

    def __init__(
        self,
        url: str | None,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = str(url or "").strip()
        self._timeout_s = float(timeout_s or 10.0)
        self._transport = transport

    async def generate(self, risk_factors: Sequence[RiskCategoryEntry]) -> StrategyResult:
        if not self._url:
            return StrategyResult.failure(GeneratorError("not_configured", "MITIGATION_GENERATOR_URL is not configured"))

        payload = {"riskFactors": [rf.to_generator_summary() for rf in risk_factors]}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as c:
                r = await c.post(self._url, json=payload)
        except httpx.TimeoutException as e:
            return StrategyResult.failure(GeneratorError("timeout", str(e) or "timeout"))
        except httpx.HTTPError as e:
            return StrategyResult.failure(GeneratorError("transport_error", str(e) or e.__class__.__name__))

        if not r.is_success:
            return StrategyResult.failure(
                GeneratorError("http_status", f"generator returned {r.status_code}", status_code=r.status_code)
            )
        try:
            data = r.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return StrategyResult.failure(GeneratorError("invalid_body", f"response is not JSON: {e}"))
        return parse_strategies_body(data)


# General strategies the in-process generator adds per category present.
_GENERAL_STRATEGIES: dict[RiskCategory, tuple[str, ...]] = {
    RiskCategory.ENGAGEMENT: (
        "Increase touchpoint frequency and quality",
        "Conduct stakeholder engagement assessment",
    ),
    RiskCategory.COMPETITION: (
        "Develop competitive differentiation strategy",
        "Schedule executive meetings to reinforce value",
    ),
    RiskCategory.STAKEHOLDER: (
        "Conduct stakeholder mapping and alignment",
        "Identify and engage new champions",
    ),
}


def builtin_strategies(risk_factors: Sequence[RiskCategoryEntry]) -> list[str]:
    """
    Authored strategies of mitigatable factors, then general strategies for
    the engagement/competition/stakeholder categories present. Duplicates are
    dropped, first occurrence wins.
    """
    out: list[str] = []
    for rf in risk_factors or []:
        if rf.isMitigatable and rf.mitigationStrategy:
            out.append(rf.mitigationStrategy)

    present = {rf.category_enum for rf in risk_factors or []}
    for cat, general in _GENERAL_STRATEGIES.items():
        if cat in present:
            out.extend(general)

    return list(dict.fromkeys(out))


class BuiltinStrategyGenerator:
    name = "builtin"

    async def generate(self, risk_factors: Sequence[RiskCategoryEntry]) -> StrategyResult:
        return StrategyResult.success(builtin_strategies(risk_factors))


def _mitigation_prompt(risk_factors: Sequence[RiskCategoryEntry]) -> str:
    lines = []
    for rf in risk_factors:
        lines.append(
            f"- [{rf.category}] {rf.name or 'Unnamed risk'} "
            f"(impact={rf.impact.value}, weight={rf.weight:.2f}): {rf.description or 'no description'}"
        )
    return (
        "You are a B2B sales coach. For the deal risks below, recommend concrete, "
        "short mitigation actions a sales rep can take this week.\n\n"
        "Risks:\n" + "\n".join(lines) + "\n\n"
        'Return ONLY a JSON object: {"strategies": ["...", "..."]} with 3-5 items.'
    )


class OpenAiStrategyGenerator:
    name = "openai"

    def __init__(self, *, timeout_s: float = 10.0):
        self._timeout_s = float(timeout_s or 10.0)

    async def generate(self, risk_factors: Sequence[RiskCategoryEntry]) -> StrategyResult:
        d = defaults_for("mitigation_strategies")
        try:
            parsed, _meta = await call_json(
                purpose="mitigation_strategies",
                messages=[{"role": "user", "content": _mitigation_prompt(risk_factors)}],
                response_model=MitigationStrategiesAI,
                max_tokens=d.max_tokens_default,
                temperature=d.temperature,
                timeout_s=self._timeout_s,
            )
        except AiNotConfigured as e:
            return StrategyResult.failure(GeneratorError("not_configured", str(e)))
        except AiParseError as e:
            return StrategyResult.failure(GeneratorError("invalid_body", str(e)))
        except AiUpstreamError as e:
            return StrategyResult.failure(GeneratorError("upstream_error", str(e)))

        strategies = [s.strip() for s in parsed.strategies if s and s.strip()]
        return StrategyResult.success(strategies)


def build_generator(settings: Settings) -> MitigationStrategyGenerator:
    kind = settings.resolved_mitigation_generator
    timeout_s = settings.mitigation_generator_timeout_seconds
    if kind == "http":
        return HttpStrategyGenerator(settings.mitigation_generator_url, timeout_s=timeout_s)
    if kind == "openai":
        return OpenAiStrategyGenerator(timeout_s=timeout_s)
    return BuiltinStrategyGenerator()
