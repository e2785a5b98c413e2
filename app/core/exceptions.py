from typing import Optional, Any


class CabBotError(Exception):
    """
    Base exception for the cab booking bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(CabBotError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(CabBotError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class DecodeError(CabBotError):
    """
    Raised when an inbound webhook payload has no usable sender or is malformed.
    """
    def __init__(self, message: str = "Could not decode webhook payload", details: Optional[Any] = None):
        super().__init__(message, code="DECODE_ERROR", status_code=400, details=details)


class PersistenceError(CabBotError):
    """
    Raised when the session, user or booking store cannot be read or written.
    """
    def __init__(self, message: str = "Persistence error", details: Optional[Any] = None):
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=503, details=details)


class ExternalServiceError(CabBotError):
    """
    Raised when an external service (e.g., Twilio) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)


class DispatchError(ExternalServiceError):
    """
    Raised when the messaging provider rejects an outbound reply.
    """
    def __init__(self, message: str = "Reply dispatch failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "DISPATCH_ERROR"


class SessionStateError(CabBotError):
    """
    Raised when a stored session cannot be read back, e.g. a step value
    written by an older deploy. The conversation is reset to idle.
    """
    def __init__(self, message: str = "Stored session is unreadable", details: Optional[Any] = None):
        super().__init__(message, code="SESSION_STATE_ERROR", status_code=500, details=details)
