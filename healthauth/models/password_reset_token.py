"""Single-use, time-boxed password reset tokens."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from healthauth.db.base import Base
from healthauth.utils.time import ensure_utc


class PasswordResetToken(Base):
    """
    Authorises exactly one password change.

    Requested -> consumed | expired. Issuing a token for an email deletes any
    earlier token for it, so one email never has two live tokens.
    """
    __tablename__ = "password_reset_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_password_reset_tokens_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<PasswordResetToken(email={self.email}, used={self.is_used}, expires={self.expires_at})>"

    def is_usable_at(self, now: datetime) -> bool:
        return not self.is_used and now < ensure_utc(self.expires_at)
