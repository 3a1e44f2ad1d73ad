"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class AuthenticationAbsentError(ApplicationError):
    """Raised when a write is attempted with no signed-in owner."""

    def __init__(self, message: str = "User not logged in") -> None:
        super().__init__(message, code="AUTH_ABSENT")


class RemoteFailureError(ApplicationError):
    """Raised when the remote store rejects or fails a call."""

    def __init__(self, message: str = "Remote service error", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message, code="SYS_REMOTE_FAILURE")


class MediaFailureError(ApplicationError):
    """Raised when picking (stage "pick") or uploading (stage "upload") an attachment fails."""

    def __init__(self, message: str = "Media upload failed", stage: str = "upload") -> None:
        self.stage = stage
        super().__init__(message, code="MEDIA_FAILURE")

