"""
Login attempt tracking for security audit.

Stores every password login attempt per account (email). Lockout itself is
driven by the counters on the users row; these rows are the audit trail.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from healthauth.db.base import Base


class LoginAttempt(Base):
    """Track password login attempts."""

    __tablename__ = "login_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_successful: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, default="unknown")  # IPv6 max length
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_login_attempts_email_created", "email", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LoginAttempt {self.email} at {self.created_at}>"
