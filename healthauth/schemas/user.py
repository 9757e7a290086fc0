import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserInfo(BaseModel):
    """User data safe to hand to callers. Never carries the password hash."""

    id: uuid.UUID
    email: EmailStr
    first_name: str
    last_name: str
    is_verified: bool
    has_password: bool
    created_at: datetime

    model_config = {"from_attributes": True}
