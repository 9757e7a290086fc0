"""
Standardized error codes and user-facing messages.

Policy outcomes (lockout, expiry, reuse) travel as these codes inside typed
results so callers can render specific messages. Secret-sensitive outcomes
share one generic message to avoid account enumeration.
"""
from typing import Optional


class ErrorCode:
    """Standard error codes."""

    # Lookups (never distinguished from "expired" for codes and reset tokens)
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ALREADY_USED = "ALREADY_USED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    CONFLICT = "CONFLICT"

    # Authentication
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    TOO_MANY_ATTEMPTS = "TOO_MANY_ATTEMPTS"

    # Input
    INVALID_INPUT = "INVALID_INPUT"

    # System errors
    STORAGE_FAILURE = "STORAGE_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Codes whose wording must not reveal whether an account or code exists
GENERIC_CODES = frozenset({
    ErrorCode.NOT_FOUND,
    ErrorCode.INVALID_CREDENTIALS,
})

_MESSAGES = {
    ErrorCode.NOT_FOUND: "Invalid credentials",
    ErrorCode.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorCode.EXPIRED: "Your session has expired. Please sign in again.",
    ErrorCode.ALREADY_USED: (
        "Password cannot be reused. Please choose a password you have not "
        "used in your last 5 passwords."
    ),
    ErrorCode.ALREADY_EXISTS: "An account with this email already exists",
    ErrorCode.CONFLICT: "A password is already set for this account",
    ErrorCode.ACCOUNT_LOCKED: (
        "Account temporarily locked due to multiple failed login attempts. "
        "Try again in {minutes} minutes."
    ),
    ErrorCode.TOO_MANY_ATTEMPTS: "Too many verification attempts. Please request a new code later.",
    ErrorCode.INVALID_INPUT: "Invalid input",
    ErrorCode.STORAGE_FAILURE: "Something went wrong. Please try again.",
    ErrorCode.INTERNAL_ERROR: "Internal server error",
}


def user_message(code: Optional[str], minutes: Optional[int] = None) -> str:
    """
    Map an error code to the message shown to the end user.

    Args:
        code: One of the ErrorCode constants
        minutes: Remaining lockout minutes, used by ACCOUNT_LOCKED

    Returns:
        Human-readable message
    """
    template = _MESSAGES.get(code or ErrorCode.INTERNAL_ERROR, _MESSAGES[ErrorCode.INTERNAL_ERROR])
    if code == ErrorCode.ACCOUNT_LOCKED:
        return template.format(minutes=minutes if minutes is not None else 30)
    return template
