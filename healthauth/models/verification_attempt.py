"""
Verification attempt audit trail.

Insert-only. Failed rows inside a trailing window drive one-time-code
throttling.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from healthauth.db.base import Base
from healthauth.models.otp_code import OTP_PURPOSE_TYPE, OTPPurpose


class VerificationAttempt(Base):
    """One submitted one-time code, successful or not."""

    __tablename__ = "verification_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    attempt_type: Mapped[OTPPurpose] = mapped_column(OTP_PURPOSE_TYPE, nullable=False)
    is_successful: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, default="unknown")  # IPv6 max length
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_verification_attempts_email_type_created", "email", "attempt_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<VerificationAttempt {self.email} {self.attempt_type} ok={self.is_successful}>"
