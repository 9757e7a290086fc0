"""
Server-side session lifecycle.

A session is usable while it is active, before its absolute expiry and
within the inactivity window since its last access. Every check re-reads the
row; nothing about a session is cached in process.

Idle cleanup is kept apart from the validity check: `check` decides, and
`expire_idle` is a separate write whose failure can never change the answer
`check` gave.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.core.exceptions import StorageFailure
from healthauth.core.security import generate_session_token
from healthauth.db.session import Database
from healthauth.models.user import User
from healthauth.models.user_session import UserSession
from healthauth.schemas.session import SessionInfo
from healthauth.utils.request import clean_ip_address, clean_user_agent
from healthauth.utils.time import Clock, ensure_utc, utcnow

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    VALID = "valid"
    MISSING = "missing"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    IDLE = "idle"


@dataclass
class SessionCheck:
    status: SessionStatus
    session: UserSession | None = None
    user: User | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is SessionStatus.VALID


class SessionManager:
    def __init__(
        self,
        database: Database,
        clock: Clock = utcnow,
        ttl_hours: int = settings.SESSION_TTL_HOURS,
        inactivity_minutes: int = settings.SESSION_INACTIVITY_MINUTES,
    ):
        self.database = database
        self.clock = clock
        self.default_ttl = timedelta(hours=ttl_hours)
        self.inactivity = timedelta(minutes=inactivity_minutes)

    def _status_of(self, user_session: UserSession, user: User, now: datetime) -> SessionStatus:
        if not user_session.is_active or not user.is_active:
            return SessionStatus.INACTIVE
        if now >= ensure_utc(user_session.expires_at):
            return SessionStatus.EXPIRED
        if now - ensure_utc(user_session.last_accessed) >= self.inactivity:
            return SessionStatus.IDLE
        return SessionStatus.VALID

    async def create_session(
        self,
        user_id: uuid.UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
        ttl: timedelta | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> UserSession:
        """
        Mint a new session for an authenticated user.

        Args:
            user_id: The authenticated user
            ip_address: Client address; only the first hop of a forwarded chain is kept
            user_agent: Client user agent
            ttl: Absolute lifetime, defaults to SESSION_TTL_HOURS

        Returns:
            The stored session row; its session_token is the bearer credential
        """
        now = self.clock()
        user_session = UserSession(
            user_id=user_id,
            session_token=generate_session_token(),
            ip_address=clean_ip_address(ip_address),
            user_agent=clean_user_agent(user_agent),
            is_active=True,
            created_at=now,
            last_accessed=now,
            expires_at=now + (ttl or self.default_ttl),
        )
        async with self.database.transaction(db) as session:
            session.add(user_session)
            await session.flush()

        logger.info(f"Session created for user {user_id}, expires {user_session.expires_at.isoformat()}")
        return user_session

    async def check(
        self,
        token: str | None,
        touch: bool = False,
        *,
        db: AsyncSession | None = None,
    ) -> SessionCheck:
        """
        Classify a presented token without any cleanup side effect.

        With `touch`, a valid session's last_accessed moves to now in the same
        transaction as the read.
        """
        if not token:
            return SessionCheck(SessionStatus.MISSING)

        now = self.clock()
        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(UserSession, User)
                .join(User, User.id == UserSession.user_id)
                .where(UserSession.session_token == token)
            )
            row = result.one_or_none()
            if row is None:
                return SessionCheck(SessionStatus.MISSING)

            user_session, user = row
            status = self._status_of(user_session, user, now)
            if status is SessionStatus.VALID and touch:
                user_session.last_accessed = now

        return SessionCheck(status, user_session, user)

    async def expire_idle(self, token: str, *, db: AsyncSession | None = None) -> bool:
        """
        Mark a session inactive if, and only if, it has gone idle.

        Returns:
            True if a row was deactivated
        """
        cutoff = self.clock() - self.inactivity
        async with self.database.transaction(db) as session:
            result = await session.execute(
                update(UserSession)
                .where(
                    UserSession.session_token == token,
                    UserSession.is_active.is_(True),
                    UserSession.last_accessed <= cutoff,
                )
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0

    async def validate(self, token: str | None) -> User | None:
        """
        Resolve a bearer token to its user, sliding the inactivity window.

        Returns:
            The user for a usable session, otherwise None
        """
        result = await self.check(token, touch=True)
        if result.status is SessionStatus.IDLE:
            try:
                await self.expire_idle(token)
            except StorageFailure as e:
                logger.warning(f"Idle session cleanup failed: {e.reason}")
        return result.user if result.is_valid else None

    async def invalidate(self, token: str | None, *, db: AsyncSession | None = None) -> None:
        """Deactivate one session. Unknown or already inactive tokens are ignored."""
        if not token:
            return
        async with self.database.transaction(db) as session:
            result = await session.execute(
                update(UserSession)
                .where(UserSession.session_token == token, UserSession.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount:
            logger.info("Session invalidated")

    async def invalidate_all(
        self,
        user_id: uuid.UUID,
        except_token: str | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> int:
        """
        Deactivate every active session of a user, optionally sparing one.

        Returns:
            Number of sessions deactivated
        """
        conditions = [UserSession.user_id == user_id, UserSession.is_active.is_(True)]
        if except_token:
            conditions.append(UserSession.session_token != except_token)

        async with self.database.transaction(db) as session:
            result = await session.execute(
                update(UserSession)
                .where(*conditions)
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount:
            logger.info(f"Revoked {result.rowcount} sessions for user {user_id}")
        return result.rowcount

    async def list_active(
        self,
        user_id: uuid.UUID,
        current_token: str | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> list[SessionInfo]:
        """Usable sessions of a user, most recently used first."""
        now = self.clock()
        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(UserSession)
                .where(
                    UserSession.user_id == user_id,
                    UserSession.is_active.is_(True),
                    UserSession.expires_at > now,
                    UserSession.last_accessed > now - self.inactivity,
                )
                .order_by(UserSession.last_accessed.desc(), UserSession.id.desc())
            )
            rows = result.scalars().all()

        sessions = []
        for row in rows:
            info = SessionInfo.model_validate(row)
            info.is_current = current_token is not None and row.session_token == current_token
            sessions.append(info)
        return sessions
