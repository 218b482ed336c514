"""HTTP error mapping shared by every router.

ValidationError 400, NotFoundError 404, business-rule and conflict
errors 409, UnavailableError 503. Anything else is logged and answered
with a bare 500 so no internals leak to clients.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from shared.errors import (
    BusinessRuleError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    OrderflowError,
    UnavailableError,
)

logger = structlog.get_logger(__name__)

STATUS_CODES: dict[type[OrderflowError], int] = {
    NotFoundError: 404,
    InsufficientStockError: 409,
    BusinessRuleError: 409,
    ConflictError: 409,
    UnavailableError: 503,
}


def status_code_for(exc: OrderflowError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.messages, "code": "validation_error"})


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        errors.setdefault(field, []).append(error["msg"])
    return JSONResponse(status_code=400, content={"error": errors, "code": "validation_error"})


async def _orderflow_error(request: Request, exc: OrderflowError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(OrderflowError, _orderflow_error)
    app.add_exception_handler(Exception, _unexpected_error)
