"""API异常处理"""

from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from ..notifications.exceptions import NotificationBridgeError

logger = structlog.get_logger()


def failed_response(status_code: int, code: str, message: str, request_id: str,
                    details: Optional[List[str]] = None) -> JSONResponse:
    """统一的失败响应体"""
    content = {
        "responseInfo": {"status": "failed"},
        "errors": [{"code": code, "message": message}],
        "request_id": request_id
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _request_log(request: Request):
    request_id = getattr(request.state, "request_id", "unknown")
    return request_id, logger.bind(request_id=request_id, path=request.url.path)


def setup_exception_handlers(app: FastAPI):
    """设置异常处理器"""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id, log = _request_log(request)
        log.warning("http_exception", status_code=exc.status_code, detail=exc.detail)
        return failed_response(exc.status_code, "HTTP_ERROR", str(exc.detail), request_id)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """事件体校验失败，如缺少 eventType / tenantId"""
        request_id, log = _request_log(request)
        errors = [
            f"{' -> '.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        log.warning("validation_error", errors=errors)
        return failed_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_REQUEST",
            "Request validation failed", request_id, details=errors
        )

    @app.exception_handler(NotificationBridgeError)
    async def bridge_exception_handler(request: Request, exc: NotificationBridgeError):
        request_id, log = _request_log(request)
        log.error("bridge_error", code=exc.code, error=exc.message)
        return failed_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, exc.message, request_id)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """管道边界之外的意外异常"""
        request_id, log = _request_log(request)
        log.error("unexpected_error", error=str(exc), error_type=type(exc).__name__)
        return failed_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "TRIGGER_FAILED", str(exc), request_id
        )
