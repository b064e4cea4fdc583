from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Authentication required."):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AuthorizationError(AppException):
    """Caller is known but lacks the role for the action."""
    def __init__(self, message: str = "You do not have permission to modify this request."):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Request not found."):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class InvalidTransitionError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_TRANSITION",
            details=details
        )


class PersistenceError(AppException):
    """Store failure. The message returned to callers is always generic."""
    def __init__(self, message: str = "Unable to save changes. Please try again later."):
        super().__init__(
            message=message,
            status_code=500,
            error_code="PERSISTENCE_ERROR"
        )
