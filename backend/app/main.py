from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .middleware.access_log import AccessLogMiddleware
from .middleware.cors import build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .problem_details import problem_response
from .routers.analytics import router as analytics_router
from .routers.health import router as health_router
from .routers.risk import router as risk_router
from .settings import settings


def create_app() -> FastAPI:
    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    app = FastAPI(
        title="Deal Risk Engine",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_allowed_origins(
            frontend_base_url=settings.frontend_base_url,
            frontend_urls=settings.frontend_urls,
        ),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-Id"],
        max_age=3000,
    )
    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(risk_router, prefix="/api/risk")
    app.include_router(analytics_router, prefix="/api/analytics")

    return app


def _reason_phrase(status_code: int) -> str | None:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return None


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    # Routes may raise HTTPException(detail={"error", "message"}); keep both.
    title: str | None = None
    safe_detail: str | None = None
    if isinstance(detail, dict):
        if isinstance(detail.get("error"), str):
            title = detail["error"]
        msg = detail.get("message")
        if isinstance(msg, str) and msg.strip():
            safe_detail = msg.strip()
    elif detail is not None and str(detail) != _reason_phrase(status_code):
        # Starlette fills detail with the bare reason phrase; treat that as no detail.
        safe_detail = str(detail)

    if status_code == 404:
        title = title or "Not Found"
        safe_detail = safe_detail or "Route not found"

    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=safe_detail,
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        loc_path = ".".join([str(x) for x in loc if x != "body"])
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": loc_path,
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    get_logger("unhandled").error(
        "unhandled_exception",
        request_id=str(rid) if rid else None,
        http_method=str(request.method or "").upper() or None,
        path=str(request.url.path or ""),
        exc_info=exc,
    )
    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if exc else None,
    )


app = create_app()
