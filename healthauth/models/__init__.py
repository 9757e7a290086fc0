from healthauth.models.login_attempt import LoginAttempt
from healthauth.models.otp_code import DeliveryMethod, OTPCode, OTPPurpose
from healthauth.models.password_history import PasswordHistoryEntry
from healthauth.models.password_reset_token import PasswordResetToken
from healthauth.models.user import User
from healthauth.models.user_session import UserSession
from healthauth.models.verification_attempt import VerificationAttempt

__all__ = [
    "DeliveryMethod",
    "LoginAttempt",
    "OTPCode",
    "OTPPurpose",
    "PasswordHistoryEntry",
    "PasswordResetToken",
    "User",
    "UserSession",
    "VerificationAttempt",
]
