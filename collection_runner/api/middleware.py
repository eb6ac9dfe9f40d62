from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from collection_runner.core.logger import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log line emitted while serving a request with its id.

    The id is bound through ``structlog.contextvars``, so the orchestrator,
    runner and publisher logs of a ``/run`` call can be grouped without passing
    it down explicitly.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.time()
        logger.debug("http.request.start")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("http.request.error")
            raise
        duration = time.time() - start
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Process-Time"] = f"{duration:.4f}"
        log = logger.warning if response.status_code >= 500 else logger.info
        log("http.request.end", status_code=response.status_code, duration_ms=round(duration * 1000, 2))
        structlog.contextvars.clear_contextvars()
        return response


def register_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestContextMiddleware)
