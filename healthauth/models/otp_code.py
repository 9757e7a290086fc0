"""
One-time code storage model.

Codes are scoped by (email, purpose). Issuing a new code deletes any earlier
code for the same scope, so at most one code is ever authoritative.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from healthauth.db.base import Base


class OTPPurpose(str, Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    VERIFICATION = "verification"


class DeliveryMethod(str, Enum):
    EMAIL = "email"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


OTP_PURPOSE_TYPE = SAEnum(OTPPurpose, name="otp_purpose", values_callable=_enum_values)
DELIVERY_METHOD_TYPE = SAEnum(DeliveryMethod, name="delivery_method", values_callable=_enum_values)


class OTPCode(Base):
    """
    A short-lived numeric code delivered out of band.

    Lifecycle: created on request, marked used on the first successful match,
    otherwise it simply expires. Expired and never-issued codes look the same
    to callers.
    """
    __tablename__ = "otp_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    code_type: Mapped[OTPPurpose] = mapped_column(OTP_PURPOSE_TYPE, nullable=False)
    delivery_method: Mapped[DeliveryMethod] = mapped_column(
        DELIVERY_METHOD_TYPE, nullable=False, default=DeliveryMethod.EMAIL
    )
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_otp_codes_email_type", "email", "code_type"),
        Index("ix_otp_codes_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<OTPCode(email={self.email}, type={self.code_type}, expires={self.expires_at})>"
