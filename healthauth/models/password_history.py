import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from healthauth.db.base import Base


class PasswordHistoryEntry(Base):
    """Prior password hash, kept only to block reuse. Never used to authenticate."""

    __tablename__ = "password_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_password_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PasswordHistoryEntry user={self.user_id} at {self.created_at}>"
