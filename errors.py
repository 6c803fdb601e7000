"""
Application error hierarchy and Flask error handlers.

AppError is the base for all typed errors. Flows raise them, the handler
registered in create_app turns them into JSON bodies of the form
``{"error": message, "code": error_code, ...details}``.

Anything else becomes a generic 500 after being logged with its traceback.
"""

from typing import Any, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from utils.logger import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"
    default_message: str = "An internal server error occurred."

    def __init__(self, message: Optional[str] = None, *, details: Optional[dict] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": self.message, "code": self.error_code}
        payload.update(self.details)
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"
    default_message = "Access denied. Invalid token."


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"
    default_message = "Conflict"


class DeliveryError(AppError):
    status_code = 500
    error_code = "delivery_failed"
    default_message = "Message delivery failed"


# ---------- authentication flow ----------

class InvalidCredentials(ValidationError):
    error_code = "invalid_credentials"
    default_message = "Invalid email or password"


class AccountDisabled(ForbiddenError):
    error_code = "account_disabled"
    default_message = "This account has been disabled"


class OtpDeliveryFailed(DeliveryError):
    error_code = "otp_delivery_failed"
    default_message = "Failed to send verification code. Please try again."


class NoChallenge(ValidationError):
    error_code = "otp_not_requested"
    default_message = "No verification code request found. Please log in again."


class ChallengeExpired(ValidationError):
    error_code = "otp_expired"
    default_message = "Verification code has expired. Please request a new one."


class AttemptsExceeded(ValidationError):
    error_code = "otp_attempts_exceeded"
    default_message = "Too many attempts. Please request a new verification code."


class InvalidOtp(ValidationError):
    error_code = "otp_invalid"
    default_message = "Invalid verification code"


class CooldownActive(ValidationError):
    error_code = "otp_cooldown"

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            f"Please wait {remaining_seconds} seconds before requesting a new code.",
            details={"remaining_seconds": remaining_seconds},
        )
        self.remaining_seconds = remaining_seconds


# ---------- agreement signatures ----------

class AgreementNotFound(NotFoundError):
    error_code = "agreement_not_found"
    default_message = "Agreement not found"


class NotAgreementParty(ForbiddenError):
    error_code = "not_agreement_party"
    default_message = "Unauthorized: You are not a party to this agreement."


class AlreadyFinalized(ConflictError):
    error_code = "agreement_finalized"
    default_message = "Cannot sign: Agreement is already finalized."


class AlreadySigned(ConflictError):
    error_code = "already_signed"
    default_message = "You have already signed this agreement."


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers on the Flask app."""

    @app.errorhandler(AppError)
    def _app_error(exc: AppError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(Exception)
    def _unhandled(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        log.exception("unhandled_exception", error_type=type(exc).__name__)
        return jsonify(error="An internal server error occurred.", code="internal_error"), 500
