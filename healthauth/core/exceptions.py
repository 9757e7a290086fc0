"""Custom exceptions for the credential core."""

from healthauth.core.errors import ErrorCode


class AuthError(Exception):
    """Base class for errors raised (rather than returned) by the core."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, reason: str = "unknown", message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class StorageFailure(AuthError):
    """Raised when the database rejects or cannot complete an operation.

    Never retried internally; the caller decides whether to retry the whole
    user-facing action.
    """

    code = ErrorCode.STORAGE_FAILURE

    def __init__(self, reason: str = "unknown"):
        super().__init__(reason, f"Storage failure: {reason}")


class InvalidInput(AuthError):
    """Raised for malformed input: bad email, weak password, wrong call contract."""

    code = ErrorCode.INVALID_INPUT

    def __init__(self, reason: str, code: str | None = None):
        super().__init__(reason)
        if code is not None:
            self.code = code
