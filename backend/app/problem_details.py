from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .settings import get_settings

PROBLEM_JSON = "application/problem+json"

_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    503: "Service Unavailable",
}


def _default_title(status_code: int) -> str:
    if status_code in _TITLES:
        return _TITLES[status_code]
    if status_code >= 500:
        return "Internal Server Error"
    return "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return str(rid)
    hdr = request.headers.get("x-request-id")
    return str(hdr) if hdr else None


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "about:blank",
        "title": title or _default_title(int(status_code)),
        "status": int(status_code),
    }
    if detail:
        payload["detail"] = str(detail)

    inst = str(getattr(request.url, "path", "") or "")
    if inst:
        payload["instance"] = inst

    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid
    if errors:
        payload["errors"] = errors
    if extensions:
        # RFC7807 extension members live under one key to avoid collisions.
        payload["extensions"] = extensions
    return payload


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ORJSONResponse:
    # Never leak internal details in production for server errors.
    safe_detail = detail
    if int(status_code) >= 500 and get_settings().is_production:
        safe_detail = None

    return ORJSONResponse(
        status_code=int(status_code),
        content=problem_payload(
            request=request,
            status_code=int(status_code),
            title=title,
            detail=safe_detail,
            errors=errors,
            extensions=extensions,
        ),
        media_type=PROBLEM_JSON,
    )
