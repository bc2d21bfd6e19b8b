import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException
from app.utils.response import error_response

logger = logging.getLogger(__name__)


def _json_error(status_code: int, message, error_code: ErrorCode, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(message, error_code, details),
    )


# -------------------------
# LEDGER ERRORS
# -------------------------
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error(
            "Ledger operation failed: %s (%s)",
            exc.detail,
            exc.error_code,
            extra={"path": request.url.path},
        )
    elif exc.error_code == ErrorCode.PARTIAL_FAILURE:
        # already logged with traceback by the service that rolled back
        logger.warning("Rolled back %s %s: %s", request.method, request.url.path, exc.details)
    else:
        logger.info(
            "Request rejected: %s (%s) on %s",
            exc.detail,
            exc.error_code,
            request.url.path,
        )

    return _json_error(exc.status_code, exc.detail, exc.error_code, exc.details)


# -------------------------
# REQUEST VALIDATION
# -------------------------
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _json_error(
        422,
        "Invalid request data",
        ErrorCode.VALIDATION_ERROR,
        jsonable_encoder(exc.errors()),
    )


# -------------------------
# FRAMEWORK HTTP ERRORS
# -------------------------
HTTP_STATUS_TO_ERROR_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return _json_error(exc.status_code, exc.detail, error_code)


# -------------------------
# CONSTRAINT VIOLATIONS
# -------------------------
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # a unique/FK/check constraint the services did not pre-validate
    logger.exception("Constraint violation on %s %s", request.method, request.url.path)
    return _json_error(409, "Database constraint violation", ErrorCode.CONFLICT)


# -------------------------
# LAST RESORT
# -------------------------
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _json_error(500, "Something went wrong. Please try again.", ErrorCode.INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
