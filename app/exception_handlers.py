"""
Exception handlers for the plugin admin API

The plugin routes report manager failures by raising CMSError subclasses
(PluginNotFoundError, PluginOperationError, ...). The handlers here turn
those, plus FastAPI's own HTTP and request validation errors, into one JSON
envelope the admin UI can render:

{
    "error": {
        "status_code": 400,
        "error_code": "PLUGIN_OPERATION_FAILED",
        "message": "Failed to deactivate plugin ecommerce-shop: Cannot deactivate ...",
        "type": "Bad Request",
        "details": {"plugin_id": "ecommerce-shop", "operation": "deactivate"},
        "path": "/api/v1/plugins/ecommerce-shop/deactivate"
    }
}

The admin UI keys its messages on `error_code`.
"""

import logging
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import CMSError, ErrorCode

logger = logging.getLogger(__name__)

_ERROR_TYPES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
}

# codes for errors raised by FastAPI itself rather than by the plugin runtime
_HTTP_ERROR_CODES = {
    400: ErrorCode.VALIDATION_FAILED,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.VALIDATION_DUPLICATE_RESOURCE,
    422: ErrorCode.VALIDATION_FAILED,
    500: ErrorCode.INTERNAL_ERROR,
}


def create_error_response(
    status_code: int,
    message: str,
    error_code: str | ErrorCode | None = None,
    details: dict[str, Any] | None = None,
    path: str | None = None,
) -> JSONResponse:
    """Build the `{"error": {...}}` body; empty `details` and `path` are left out."""
    body: dict[str, Any] = {
        "status_code": status_code,
        "message": message,
        "type": get_error_type(status_code),
    }
    if error_code:
        body["error_code"] = error_code.value if isinstance(error_code, ErrorCode) else error_code
    if details:
        body["details"] = details
    if path:
        body["path"] = path

    return JSONResponse(status_code=status_code, content={"error": body})


def get_error_type(status_code: int) -> str:
    return _ERROR_TYPES.get(status_code, "Error")


def get_http_error_code(status_code: int) -> str:
    return _HTTP_ERROR_CODES.get(status_code, ErrorCode.UNKNOWN_ERROR).value


async def cms_exception_handler(request: Request, exc: CMSError) -> JSONResponse:
    """
    Render a plugin runtime error.

    Status code, error code and details come from the exception itself, so a
    PluginOperationError carries the manager's failure reason to the UI.
    Server-side failures (a broken plugin store) are logged as errors, the
    rest as warnings.
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, "%s on %s: %s", exc.error_code.value, request.url.path, exc.message)

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
        path=request.url.path,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and wrong methods, in the same envelope."""
    logger.warning("HTTPException on %s: %s", request.url.path, exc.detail)

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=get_http_error_code(exc.status_code),
        path=request.url.path,
    )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    """
    Render a rejected request: a malformed plugin id in the path, or an
    install / config body that does not fit its schema.

    Each problem becomes `{"field", "message", "type"}`; path parameters keep
    their `path.` prefix, body fields drop the `body.` one.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("Validation error on %s: %d error(s)", request.url.path, len(errors))

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code=ErrorCode.VALIDATION_FAILED,
        details={"validation_errors": errors},
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    """Install the handlers above on the admin application."""
    app.add_exception_handler(CMSError, cms_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)

    logger.info("Plugin API exception handlers registered")
