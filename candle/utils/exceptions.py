"""Custom exceptions for the Candle backend."""

import functools
from typing import Any, Callable, Dict, Optional


class CandleException(Exception):
    """Base exception for the Candle application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize CandleException.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            error_code: Machine-readable error code.
            details: Additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# Firebase error code -> HTTP status
_CODE_STATUS = {
    "not-found": 404,
    "storage/not-found": 404,
    "permission-denied": 403,
    "storage/unauthorized": 403,
    "already-exists": 409,
    "auth/email-already-in-use": 409,
    "failed-precondition": 412,
    "aborted": 409,
    "invalid-argument": 422,
    "storage/invalid-argument": 422,
    "out-of-range": 422,
    "auth/invalid-email": 422,
    "auth/weak-password": 422,
    "auth/user-not-found": 401,
    "auth/wrong-password": 401,
    "auth/invalid-token": 401,
    "auth/too-many-requests": 429,
    "storage/quota-exceeded": 507,
    "unavailable": 503,
    "deadline-exceeded": 504,
    "unimplemented": 501,
}


class FirebaseError(CandleException):
    """Error raised around a Firebase SDK call, tagged with its Firebase code."""

    def __init__(
        self,
        message: str,
        code: str = "unknown",
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.code = code
        self.original_error = original_error
        super().__init__(
            message=message,
            status_code=_CODE_STATUS.get(code, 500),
            error_code=code.upper().replace("/", "_").replace("-", "_"),
            details={"code": code},
        )


class FirestoreError(FirebaseError):
    """Raised when a Firestore read or write fails."""


class StorageError(FirebaseError):
    """Raised when a Firebase Storage upload or download fails."""


class AuthError(FirebaseError):
    """Raised when Firebase Auth rejects a request."""

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "auth/invalid-token",
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, code, original_error)


class AuthorizationError(CandleException):
    """Raised when user is not authorized to access a resource."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthorizationError."""
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHORIZATION_ERROR",
            details=details,
        )


class NotFoundError(CandleException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize NotFoundError."""
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(CandleException):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ValidationError."""
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details,
        )


_FRIENDLY_MESSAGES = {
    # Auth errors
    "auth/email-already-in-use": "This email is already registered. Please sign in instead.",
    "auth/invalid-email": "Please enter a valid email address.",
    "auth/weak-password": "Password should be at least 6 characters.",
    "auth/user-not-found": "No account found with this email.",
    "auth/wrong-password": "Incorrect password. Please try again.",
    "auth/network-request-failed": "Network error. Please check your connection.",
    "auth/too-many-requests": "Too many failed attempts. Please try again later.",
    # Firestore errors
    "permission-denied": "You do not have permission to perform this action.",
    "unavailable": "Service is temporarily unavailable. Please try again.",
    "not-found": "The requested resource was not found.",
    "already-exists": "This resource already exists.",
    "failed-precondition": "Operation failed due to a precondition.",
    "aborted": "Operation was aborted.",
    "out-of-range": "Operation is out of valid range.",
    "unimplemented": "This operation is not implemented.",
    "internal": "An internal error occurred.",
    "deadline-exceeded": "Operation timed out. Please try again.",
    # Storage errors
    "storage/unauthorized": "You do not have permission to access this file.",
    "storage/canceled": "Upload was canceled.",
    "storage/unknown": "An unknown storage error occurred.",
    "storage/invalid-argument": "Invalid file or path provided.",
    "storage/not-found": "File not found.",
    "storage/quota-exceeded": "Storage quota exceeded.",
}


# google.api_core exception class -> Firebase-style code
_API_CORE_CODES = {
    "NotFound": "not-found",
    "PermissionDenied": "permission-denied",
    "Forbidden": "permission-denied",
    "AlreadyExists": "already-exists",
    "Conflict": "aborted",
    "FailedPrecondition": "failed-precondition",
    "Aborted": "aborted",
    "InvalidArgument": "invalid-argument",
    "BadRequest": "invalid-argument",
    "OutOfRange": "out-of-range",
    "ServiceUnavailable": "unavailable",
    "DeadlineExceeded": "deadline-exceeded",
    "MethodNotImplemented": "unimplemented",
    "InternalServerError": "internal",
}


def error_code_of(error: BaseException) -> str:
    """Best-effort Firebase-style code for an arbitrary exception."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code
    return _API_CORE_CODES.get(type(error).__name__, "unknown")


def wraps_firestore_errors(func: Callable) -> Callable:
    """Re-raise unexpected SDK failures from a service call as FirestoreError."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CandleException:
            raise
        except Exception as e:
            raise FirestoreError(get_error_message(e), error_code_of(e), e) from e

    return wrapper


def get_error_message(error: BaseException) -> str:
    """
    Map an exception to a user-facing message.

    Our own FirebaseError subclasses already carry a final message; anything
    else is looked up by its Firebase error code.

    Args:
        error: Exception raised by a service or SDK call.

    Returns:
        Message suitable for showing to the user.
    """
    if isinstance(error, FirebaseError):
        return error.message

    code = error_code_of(error)
    if code in _FRIENDLY_MESSAGES:
        return _FRIENDLY_MESSAGES[code]
    return str(error) or "An unexpected error occurred"
