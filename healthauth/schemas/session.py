from datetime import datetime

from pydantic import BaseModel, field_validator

from healthauth.utils.time import ensure_utc


class SessionInfo(BaseModel):
    """One entry of the self-service "where am I signed in" list."""

    id: int
    ip_address: str
    user_agent: str
    created_at: datetime
    last_accessed: datetime
    expires_at: datetime
    is_current: bool = False

    model_config = {"from_attributes": True}

    @field_validator("created_at", "last_accessed", "expires_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)
