from healthauth.schemas.session import SessionInfo
from healthauth.schemas.user import UserInfo

__all__ = ["SessionInfo", "UserInfo"]
