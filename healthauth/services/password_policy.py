"""
Stateless password strength rules.

Checked by callers before a password reaches the credential store or the
reset flow. Nothing here touches storage.
"""

MIN_LENGTH = 12
MAX_BYTES = 72  # bcrypt ignores everything past this

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:',.<>?/`~"

SEQUENTIAL_PATTERNS = (
    "123456", "234567", "345678", "456789", "567890",
    "abcdef", "bcdefg", "cdefgh", "defghi",
    "qwerty", "asdfgh", "zxcvbn",
)

COMMON_PASSWORDS = frozenset({
    "password", "password1", "password123",
    "qwerty", "qwerty1", "qwerty123",
    "letmein", "letmein123",
    "welcome", "welcome1", "welcome123",
    "iloveyou", "monkey123", "healthy123",
    "12345678", "123456789", "1234567890",
    "abc123", "abc12345",
})

_CHARACTER_CLASSES = (
    (str.isupper, "Password must contain at least one uppercase letter (A-Z)"),
    (str.islower, "Password must contain at least one lowercase letter (a-z)"),
    (str.isdigit, "Password must contain at least one number (0-9)"),
    (lambda c: c in SPECIAL_CHARACTERS, f"Password must contain at least one special character ({SPECIAL_CHARACTERS})"),
)


def validate_password_complexity(password: str, user_email: str | None = None) -> tuple[bool, str]:
    """
    Check a candidate password against the strength rules.

    Args:
        password: The candidate, plaintext
        user_email: Owner's address; its local part may not appear in the password

    Returns:
        Tuple of (is_valid, error_message); the message is empty when valid
    """
    if len(password) < MIN_LENGTH:
        return False, f"Password must be at least {MIN_LENGTH} characters long"
    if len(password.encode("utf-8")) > MAX_BYTES:
        return False, f"Password must not exceed {MAX_BYTES} bytes"

    lowered = password.lower()

    if user_email:
        local_part = user_email.split("@")[0].lower()
        if len(local_part) >= 3 and local_part in lowered:
            return False, "Password cannot contain your email username"

    for has_class, message in _CHARACTER_CLASSES:
        if not any(has_class(c) for c in password):
            return False, message

    for pattern in SEQUENTIAL_PATTERNS:
        if pattern in lowered:
            return False, f"Password cannot contain common patterns like '{pattern}'"

    for i in range(len(lowered) - 3):
        if lowered[i].isalnum() and lowered[i:i + 4] == lowered[i] * 4:
            return False, "Password cannot contain repeated characters (e.g., 'aaaa' or '1111')"

    if lowered in COMMON_PASSWORDS:
        return False, "Password is too common. Please choose a more secure password"

    return True, ""
