from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from ..observability.logging import get_logger
from ..settings import settings

log = get_logger("ai")

T = TypeVar("T", bound=BaseModel)


class AiError(RuntimeError):
    pass


class AiNotConfigured(AiError):
    pass


class AiUpstreamError(AiError):
    pass


class AiParseError(AiError):
    pass


@dataclass(frozen=True)
class AiMeta:
    purpose: str
    model: str
    response_id: str | None = None


def _status_code(exc: Exception) -> int | None:
    for attr in ("status_code", "status", "http_status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    resp = getattr(exc, "response", None)
    v = getattr(resp, "status_code", None)
    return v if isinstance(v, int) else None


def _client(*, timeout_s: float = 30.0) -> Any:
    if not settings.openai_api_key:
        raise AiNotConfigured("OPENAI_API_KEY not configured")
    # Callers decide about retries; keep SDK retries off.
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        max_retries=0,
        timeout=max(1.0, float(timeout_s or 30.0)),
    )


def _clip(s: str, max_len: int) -> str:
    s = str(s or "")
    return s if len(s) <= max_len else s[:max_len]


def _extract_first_json_object(text: str) -> str | None:
    if not text:
        return None
    m = re.search(r"\{[\s\S]*\}", text)
    return m.group(0) if m else None


def parse_json_model(text: str, response_model: type[T]) -> T:
    """
    Parse model output into a Pydantic model. Tolerates prose around the object.
    """
    raw = (text or "").strip()
    if not raw:
        raise AiParseError("empty_model_response")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        candidate = _extract_first_json_object(raw)
        if not candidate:
            raise AiParseError("no_json_object_in_response")
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise AiParseError(f"invalid_json: {e}") from e
    try:
        return response_model.model_validate(data)
    except ValidationError as e:
        raise AiParseError(f"schema_mismatch: {_clip(str(e), 300)}") from e


async def call_json(
    *,
    purpose: str,
    messages: list[dict[str, str]],
    response_model: type[T],
    max_tokens: int = 600,
    temperature: float = 0.2,
    timeout_s: float = 30.0,
) -> tuple[T, AiMeta]:
    """
    Single chat.completions call in JSON mode, validated server-side.

    Raises AiNotConfigured / AiUpstreamError / AiParseError.
    """
    client = _client(timeout_s=timeout_s)
    model = str(settings.openai_model or "gpt-4o-mini").strip() or "gpt-4o-mini"
    try:
        resp = await client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=int(max_tokens),
            temperature=float(temperature),
            response_format={"type": "json_object"},
        )
    except Exception as e:
        log.warning("ai_call_failed", purpose=purpose, model=model, status_code=_status_code(e), error=_clip(str(e), 300))
        raise AiUpstreamError(str(e) or "ai_upstream_error") from e

    try:
        content = resp.choices[0].message.content or ""
    except (AttributeError, IndexError) as e:
        raise AiParseError("malformed_completion") from e

    parsed = parse_json_model(content, response_model)
    return parsed, AiMeta(purpose=purpose, model=model, response_id=getattr(resp, "id", None))
