"""API中间件"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger()

# 探活请求频繁，只在调试级别记录
PROBE_PATHS = {"/health", "/health/transport", "/actuator/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志中间件，为每个请求绑定请求ID"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        path = request.url.path
        log = logger.bind(request_id=request_id, method=request.method, path=path)
        emit = log.debug if path in PROBE_PATHS else log.info

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            log.error("request_failed", error=str(e), elapsed_ms=self._elapsed_ms(started))
            raise

        elapsed_ms = self._elapsed_ms(started)
        emit("request_handled", status_code=response.status_code, elapsed_ms=elapsed_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000
