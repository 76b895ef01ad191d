from __future__ import annotations

import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import request_id_var

_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Accepts an inbound X-Request-Id when it is a short token, else generates a UUIDv4.
    - Stores it in request.state.request_id and a contextvar for logging.
    - Always echoes X-Request-Id on the response.
    """

    header_name = "X-Request-Id"

    async def dispatch(self, request: Request, call_next):
        inbound = str(request.headers.get("x-request-id") or "").strip()
        request_id = inbound if _SAFE_ID.match(inbound) else str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            request_id_var.reset(token)
