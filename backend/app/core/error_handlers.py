"""
全局异常处理
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import IntegrationError

logger = logging.getLogger(__name__)


async def integration_exception_handler(request: Request, exc: IntegrationError) -> JSONResponse:
    """将集成模块异常转换为统一的错误响应"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "IntegrationError: %s - %s",
        exc.code,
        exc.message,
        extra={
            "error_code": exc.code,
            "status_code": exc.status_code,
            "details": exc.details,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """兜底处理未预期的异常"""
    logger.exception(
        "Unhandled exception: %s",
        str(exc),
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "服务器内部错误",
                "details": {},
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""
    app.add_exception_handler(IntegrationError, integration_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
