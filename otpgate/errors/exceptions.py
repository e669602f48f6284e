"""Domain exceptions for the register / login / verify-otp flows.

Every class carries the HTTP status it maps to and a default message, so the
handlers in ``errors.handlers`` can render any of them without a lookup table.
All client mistakes are reported as 400 Bad Request.
"""
from fastapi import status


class OtpGateError(Exception):
    """Base class for all errors raised by the auth services"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"

    def __init__(self, detail: str = None, *, cause: BaseException = None):
        self.detail = detail or self.detail
        self.cause = cause
        super().__init__(self.detail)


# ---------- 400 ----------
class ValidationError(OtpGateError):
    """Missing or malformed input"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"


class NotFoundError(OtpGateError):
    """Unknown account or OTP"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Resource not found"


class AccountNotFound(NotFoundError):
    detail = "User not found"


class OtpNotFound(NotFoundError):
    detail = "OTP not found or expired"


class ConflictError(OtpGateError):
    """Duplicate registration"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Resource already exists"


class EmailAlreadyRegistered(ConflictError):
    detail = "Email already exists"


class AuthError(OtpGateError):
    """Wrong password or wrong OTP"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Authentication failed"


class InvalidCredentials(AuthError):
    detail = "Incorrect password"


class InvalidOtp(AuthError):
    detail = "Invalid OTP"


# ---------- 500 ----------
class DependencyError(OtpGateError):
    """A collaborator (store, mailer) failed"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Dependency failure"


class NotificationFailed(DependencyError):
    detail = "Failed to send OTP"


class StoreUnavailable(DependencyError):
    detail = "Credential store unavailable"
