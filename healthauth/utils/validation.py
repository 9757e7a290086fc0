"""Email normalisation."""

from pydantic import EmailStr, TypeAdapter, ValidationError

from healthauth.core.exceptions import InvalidInput

_email_adapter = TypeAdapter(EmailStr)


def canonical_email(email: str) -> str:
    """Case-stable storage form of an address. Does not validate."""
    return email.strip().lower()


def normalize_email(email: str | None) -> str:
    """
    Validate an address and return its canonical form.

    Raises:
        InvalidInput: if the address is missing or malformed
    """
    if not email or not email.strip():
        raise InvalidInput("Email is required")
    try:
        validated = _email_adapter.validate_python(email.strip())
    except ValidationError as e:
        raise InvalidInput("Invalid email address") from e
    return canonical_email(validated)
