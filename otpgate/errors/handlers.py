"""Error handlers for the application"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
import logging

from .exceptions import OtpGateError, StoreUnavailable

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGES = {
    "/register": "Name, Email, and Password are required!",
    "/login": "Email and Password are required!",
    "/verify-otp": "Email and OTP are required!",
}


def _expose(request: Request) -> bool:
    return bool(request.app.state.settings.EXPOSE_ERROR_DETAILS)


def _error_body(request: Request, message: str, cause: BaseException = None) -> dict:
    body = {"message": message}
    if cause is not None and _expose(request):
        body["error"] = str(cause)
    return body


async def otpgate_exception_handler(request: Request, exc: OtpGateError):
    """
    Render a domain error with its own status and message
    """
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.cause or exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.detail, exc.cause),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Missing or malformed fields are a 400, with the per-route message
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": REQUIRED_FIELDS_MESSAGES.get(request.url.path, "Validation error"),
            "errors": errors
        }
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """
    Handle SQLAlchemy errors that escaped the credential store
    """
    logger.error(f"Database error on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, StoreUnavailable.detail, exc),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle general exceptions
    """
    logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal server error", exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OtpGateError, otpgate_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
