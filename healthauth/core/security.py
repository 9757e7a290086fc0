"""Password hashing and random credential generation."""

import logging
import secrets

from passlib.context import CryptContext

from healthauth.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

OTP_LENGTH = 6


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Slow, salted comparison. A missing hash never verifies."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a hash passlib recognises
        logger.warning("Unrecognised password hash format encountered")
        return False


def is_password_hash(value: str) -> bool:
    """True when the value is already a hash this context understands."""
    return pwd_context.identify(value) is not None


def generate_session_token() -> str:
    """256-bit opaque bearer token."""
    return secrets.token_hex(32)


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def generate_otp_code() -> str:
    """Uniformly random 6-digit code; leading zeros are allowed."""
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


# Verified against when an email is unknown so both paths cost the same
DUMMY_PASSWORD_HASH = pwd_context.hash(secrets.token_urlsafe(16))
