"""
Account lockout policy for password logins.

Tracks consecutive failed password attempts on the user row and locks the
account for a fixed period once the threshold is reached.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.db.session import Database
from healthauth.models.user import User
from healthauth.utils.time import Clock, ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class LockoutStatus:
    """Lockout state of one account at a point in time."""

    locked: bool
    failed_attempts: int = 0
    locked_until: datetime | None = None
    remaining_minutes: int = 0


class LockoutPolicy:
    def __init__(
        self,
        database: Database,
        clock: Clock = utcnow,
        threshold: int = settings.LOCKOUT_THRESHOLD,
        lockout_minutes: int = settings.LOCKOUT_MINUTES,
    ):
        self.database = database
        self.clock = clock
        self.threshold = threshold
        self.lockout = timedelta(minutes=lockout_minutes)

    def _status(self, failed_attempts: int, locked_until: datetime | None, now: datetime) -> LockoutStatus:
        locked_until = ensure_utc(locked_until)
        if locked_until is None or now >= locked_until:
            return LockoutStatus(locked=False, failed_attempts=failed_attempts)

        remaining = math.ceil((locked_until - now).total_seconds() / 60)
        return LockoutStatus(
            locked=True,
            failed_attempts=failed_attempts,
            locked_until=locked_until,
            remaining_minutes=max(1, remaining),
        )

    async def _read(self, session: AsyncSession, user_id: uuid.UUID) -> tuple[int, datetime | None] | None:
        result = await session.execute(
            select(User.failed_login_attempts, User.account_locked_until).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return row.failed_login_attempts, row.account_locked_until

    async def record_failure(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> LockoutStatus:
        """
        Count one failed password attempt.

        A single UPDATE increments the counter and sets the lock when the new
        count reaches the threshold, so concurrent failures for the same
        account serialise on the row lock and none are lost. A lock that has
        already lapsed restarts the count at 1.
        """
        now = self.clock()
        lock_lapsed = and_(
            User.account_locked_until.is_not(None),
            User.account_locked_until <= now,
        )
        still_locked = and_(
            User.account_locked_until.is_not(None),
            User.account_locked_until > now,
        )
        new_count = case((lock_lapsed, 1), else_=User.failed_login_attempts + 1)

        async with self.database.transaction(db) as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    failed_login_attempts=new_count,
                    account_locked_until=case(
                        (still_locked, User.account_locked_until),
                        (new_count >= self.threshold, now + self.lockout),
                        else_=None,
                    ),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.warning("Lockout failure recorded for unknown user")
                return LockoutStatus(locked=False)

            failed_attempts, locked_until = await self._read(session, user_id)

        status = self._status(failed_attempts, locked_until, now)
        if status.locked and failed_attempts == self.threshold:
            logger.warning(f"Account locked after {failed_attempts} failed login attempts")
        return status

    async def record_success(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> None:
        """Reset the counter and clear any lock."""
        async with self.database.transaction(db) as session:
            await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(failed_login_attempts=0, account_locked_until=None)
                .execution_options(synchronize_session=False)
            )

    async def status(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> LockoutStatus:
        now = self.clock()
        async with self.database.transaction(db) as session:
            row = await self._read(session, user_id)
        if row is None:
            return LockoutStatus(locked=False)
        return self._status(*row, now)

    async def is_locked(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> bool:
        return (await self.status(user_id, db=db)).locked
