"""Exception handlers — every failure leaves as the same JSON envelope.

    {"error": {"code": "...", "message": "...", "details": ..., "timestamp": "..."}}

Server-side failures (database, Redis, anything unexpected) are logged
with their full detail and answered with a generic message only.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ngobrol.errors import AppError, ErrorCode, error_body, field_errors

logger = structlog.get_logger()

_HTTP_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    409: ErrorCode.ALREADY_EXISTS,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
}


def _json(status_code: int, body: dict, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.is_server_error:
        logger.error(
            "request.server_error",
            code=exc.code.value,
            detail=exc.internal or exc.message,
            path=request.url.path,
        )
    else:
        logger.warning(
            "request.client_error",
            code=exc.code.value,
            message=exc.message,
            path=request.url.path,
        )
    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return _json(exc.status_code, exc.to_body(), headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    code = ErrorCode.VALIDATION_ERROR
    if errors and all(
        tuple(err.get("loc") or ("",))[0] == "path" and err.get("type") == "uuid_parsing"
        for err in errors
    ):
        code = ErrorCode.INVALID_UUID
    details = field_errors(errors, skip=("body", "query", "path", "header"))
    logger.warning("request.validation_error", code=code.value, fields=list(details))
    return _json(422, error_body(code, details=details))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else None
    if exc.status_code >= 500:
        logger.error("request.http_error", status=exc.status_code, detail=exc.detail)
        message = None
    return _json(exc.status_code, error_body(code, message), getattr(exc, "headers", None))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "request.database_error",
        error=repr(exc),
        path=request.url.path,
        exc_info=exc,
    )
    return _json(500, error_body(ErrorCode.DATABASE_ERROR))


async def redis_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    logger.error("request.redis_error", error=repr(exc), path=request.url.path)
    return _json(500, error_body(ErrorCode.REDIS_ERROR))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request.unhandled_error",
        error=repr(exc),
        path=request.url.path,
        exc_info=exc,
    )
    return _json(500, error_body(ErrorCode.INTERNAL_ERROR))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(RedisError, redis_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
