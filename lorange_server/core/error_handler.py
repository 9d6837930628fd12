"""
错误处理模块
把各类异常统一转换为 {"success": false, "error_code", "message", "details"} 响应

- 业务异常按 error_code 查表得到 HTTP 状态码
- 框架抛出的 HTTPException（404 路由不存在、405 方法不允许等）换成对应的错误码
- 请求校验失败时按字段列出原因
- 未知异常写入 logs 表，数据库不可用时只记日志
"""

import json
import logging
import traceback
from typing import Any, Dict, List, Optional
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)

# 业务错误码 -> HTTP 状态码，未列出的按 400 处理
ERROR_STATUS = {
    "BAD_REQUEST": 400,
    "MISSING_CREDENTIALS": 400,
    "FILE_REQUIRED": 400,
    "AUTHENTICATION_REQUIRED": 401,
    "INVALID_CREDENTIALS": 401,
    "PERMISSION_DENIED": 403,
    "RESOURCE_NOT_FOUND": 404,
    "CLOSURE_NOT_FOUND": 404,
    "RECURRING_CLOSURE_NOT_FOUND": 404,
    "ANNOUNCEMENT_NOT_FOUND": 404,
    "MEDIA_NOT_FOUND": 404,
    "GALLERY_ITEM_NOT_FOUND": 404,
    "DUPLICATE_RESOURCE": 409,
    "CLOSURE_DUPLICATE": 409,
    "FILE_TOO_LARGE": 413,
    "VALIDATION_ERROR": 422,
    "INVALID_RULE": 422,
    "RATE_LIMITED": 429,
    "INTERNAL_ERROR": 500,
    "UPSTREAM_ERROR": 503,
}

# 框架层 HTTP 状态码 -> 错误码
HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_REQUIRED",
    403: "PERMISSION_DENIED",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "FILE_TOO_LARGE",
    429: "RATE_LIMITED",
}


def status_for(error_code: str) -> int:
    return ERROR_STATUS.get(error_code, 400)


def error_body(error_code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error_code": error_code,
        "message": message,
        "details": details or {},
    }


def error_json(status_code: int, error_code: str, message: str,
               details: Optional[Dict[str, Any]] = None,
               headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(error_code, message, details),
        headers=headers,
    )


def _field_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """[{"field": "body.slot", "message": ..., "type": ...}]"""
    fields = []
    for err in exc.errors():
        fields.append({
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        })
    return fields


def record_system_error(request: Request, exc: Exception) -> None:
    """未知异常写入 logs 表"""
    detail = {
        "method": request.method,
        "path": request.url.path,
        "type": type(exc).__name__,
        "message": str(exc),
        "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    logger.error("Unhandled error on %s %s: %s: %s",
                 detail["method"], detail["path"], detail["type"], detail["message"])

    db = getattr(request.app.state, "db", None)
    if db is None:
        return
    try:
        db.execute(
            "INSERT INTO logs(actor_id, action, detail_json) VALUES (?,?,?)",
            [None, "system_error", json.dumps(detail, ensure_ascii=False)]
        )
    except BaseApplicationError:
        logger.exception("Failed to log error to database")


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """业务异常"""
    status_code = status_for(exc.error_code)
    headers = None
    if status_code == 429:
        retry_after = exc.details.get("retry_after") or exc.details.get("window_seconds")
        if retry_after:
            headers = {"Retry-After": str(int(retry_after))}
    if status_code >= 500:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return error_json(status_code, exc.error_code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """框架抛出的 HTTP 异常"""
    return error_json(
        exc.status_code,
        HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        str(exc.detail),
        {"status_code": exc.status_code},
        getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败"""
    return error_json(422, "VALIDATION_ERROR", "请求参数验证失败", {"fields": _field_errors(exc)})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未捕获的异常"""
    record_system_error(request, exc)
    return error_json(500, "INTERNAL_ERROR", "系统内部错误", {"error_type": type(exc).__name__})
