"""
Service-wide exception types.

The store and workspace report write failures as result tuples rather than
raising; these exceptions cover authentication and import parsing and
are mapped to JSON responses by the app-level error handlers.

Usage:
    from uat_tracker.core.exceptions import AuthenticationRequired, ImportFormatError

    raise AuthenticationRequired()
    raise ImportFormatError("CSV must be UTF-8 encoded.")
"""


class AuthenticationRequired(Exception):
    """Raised when an operation needs a signed-in user and none exists. Maps to 401."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ImportFormatError(Exception):
    """Raised when an uploaded test-case file cannot be read at all."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)
