"""Custom exceptions for the Community Connect backend.

Every failure that reaches a client is one of these; the message is what the
client sees, so it must never carry internal detail.
"""


class AppError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str = "An error occurred", status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input. Safe to show verbatim."""

    status_code = 400


class AuthenticationError(AppError):
    """Bad credentials or a missing/expired session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(AppError):
    """CSRF mismatch or a forbidden action."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class LockoutError(AppError):
    """Account temporarily locked. Never discloses the unlock time."""

    status_code = 423

    def __init__(
        self,
        message: str = "Account temporarily locked due to too many failed attempts. Please try again later.",
    ):
        super().__init__(message)


class RateLimitError(AppError):
    status_code = 429

    def __init__(self, message: str = "Too many requests. Please try again later."):
        super().__init__(message)


class InternalError(AppError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
