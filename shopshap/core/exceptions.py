from datetime import datetime
from enum import Enum
from typing import Optional, Any


class ShopShapError(Exception):
    """
    Base exception for ShopShap application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(ShopShapError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(ShopShapError):
    """
    Raised when a phone number or code fails format validation.
    Never touches stored OTP or rate-limit state.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)


class RateLimitExceededError(ShopShapError):
    """
    Raised when a phone number has used up its code requests for the window.
    """
    def __init__(self, message: str, reset_at: datetime, wait_minutes: int):
        self.reset_at = reset_at
        self.wait_minutes = wait_minutes
        super().__init__(
            message,
            code="RATE_LIMITED",
            status_code=429,
            details={"reset_at": reset_at.isoformat(), "wait_minutes": wait_minutes}
        )


class CodeVerificationError(ShopShapError):
    """
    Raised when a submitted code cannot be accepted.

    code is one of CODE_NOT_FOUND, CODE_EXPIRED, TOO_MANY_ATTEMPTS, INCORRECT_CODE.
    """
    def __init__(self, message: str, code: str, remaining_attempts: Optional[int] = None):
        self.remaining_attempts = remaining_attempts
        details = {"remaining_attempts": remaining_attempts} if remaining_attempts is not None else None
        super().__init__(message, code=code, status_code=400, details=details)


class DeliveryFailure(str, Enum):
    """Why the messaging gateway could not deliver a message."""

    UNCONFIGURED = "GATEWAY_UNCONFIGURED"
    INVALID_NUMBER = "INVALID_NUMBER"
    CHANNEL_UNSUPPORTED = "CHANNEL_UNSUPPORTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    GENERIC = "DELIVERY_FAILED"


class DeliveryError(ShopShapError):
    """
    Raised when the messaging gateway fails to send a message.
    """
    def __init__(self, reason: DeliveryFailure, message: str = "Message delivery failed", details: Optional[Any] = None):
        self.reason = reason
        super().__init__(message, code=reason.value, status_code=502, details=details)
