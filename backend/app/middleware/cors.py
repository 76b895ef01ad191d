from __future__ import annotations


def build_allowed_origins(*, frontend_base_url: str | None, frontend_urls: str | None) -> list[str]:
    """
    Local dev origins plus the configured frontend(s). FRONTEND_URLS is comma-separated.
    """
    allowed: set[str] = {
        "http://localhost:3000",
        "http://localhost:3001",
    }

    if frontend_base_url and frontend_base_url.strip():
        allowed.add(frontend_base_url.strip().rstrip("/"))

    for origin in [s.strip().rstrip("/") for s in str(frontend_urls or "").split(",") if s.strip()]:
        allowed.add(origin)

    return sorted(allowed)
