from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("upstream.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and log its outcome."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    def _log_data(self, request: Request, request_id: str, started: float) -> dict[str, object]:
        data: dict[str, object] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
        principal = principal_ctx_var.get() or getattr(request.state, "principal", None)
        if principal:
            data["principal"] = principal
        return data

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        principal_token = principal_ctx_var.set(None)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request.failed", extra={"extra_data": self._log_data(request, request_id, started)})
            raise
        else:
            data = self._log_data(request, request_id, started)
        finally:
            request_id_ctx_var.reset(token)
            principal_ctx_var.reset(principal_token)
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{data['duration_ms']:.2f}ms")
        data["status"] = response.status_code
        logger.info("request.completed", extra={"extra_data": data})
        return response
