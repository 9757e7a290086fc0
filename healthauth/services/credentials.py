"""
User records and password credentials.

Hashes are produced and checked with the bcrypt CryptContext from
healthauth.core.security. Every new hash is also appended to the password
history in the same transaction.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.errors import ErrorCode
from healthauth.core.exceptions import InvalidInput
from healthauth.core.security import get_password_hash, verify_password
from healthauth.db.session import Database
from healthauth.models.user import User
from healthauth.services.password_history import PasswordHistory
from healthauth.utils.time import Clock, utcnow
from healthauth.utils.validation import canonical_email, normalize_email

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(
        self,
        database: Database,
        history: PasswordHistory | None = None,
        clock: Clock = utcnow,
    ):
        self.database = database
        self.clock = clock
        self.history = history or PasswordHistory(database, clock=clock)

    async def create_user(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
        password: str | None = None,
        is_verified: bool = False,
        *,
        db: AsyncSession | None = None,
    ) -> User:
        """
        Create an account, optionally with an initial password.

        Accounts created without a password authenticate by one-time code
        only until a password is set up.

        Raises:
            InvalidInput: malformed email, or ALREADY_EXISTS for a taken one
        """
        email = normalize_email(email)
        now = self.clock()
        password_hash = get_password_hash(password) if password else None

        user = User(
            email=email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            is_verified=is_verified,
            is_active=True,
            password_hash=password_hash,
            password_changed_at=now if password_hash else None,
            failed_login_attempts=0,
            created_at=now,
            updated_at=now,
        )

        async with self.database.transaction(db) as session:
            existing = await session.execute(select(User.id).where(User.email == email))
            if existing.scalar_one_or_none() is not None:
                raise InvalidInput("Email already registered", code=ErrorCode.ALREADY_EXISTS)

            session.add(user)
            try:
                await session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent signup for the same email
                raise InvalidInput("Email already registered", code=ErrorCode.ALREADY_EXISTS) from e

            if password_hash:
                await self.history.record(user.id, password_hash, db=session)

        logger.info(f"User created: id={user.id} has_password={password_hash is not None}")
        return user

    async def get_user_by_email(self, email: str, *, db: AsyncSession | None = None) -> User | None:
        async with self.database.transaction(db) as session:
            result = await session.execute(select(User).where(User.email == canonical_email(email)))
            return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> User | None:
        async with self.database.transaction(db) as session:
            return await session.get(User, user_id)

    async def mark_verified(self, user_id: uuid.UUID, *, db: AsyncSession | None = None) -> None:
        async with self.database.transaction(db) as session:
            await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(is_verified=True, updated_at=self.clock())
            )

    async def verify_password(
        self,
        user_id: uuid.UUID,
        candidate: str,
        *,
        db: AsyncSession | None = None,
    ) -> bool:
        """
        Check a candidate password against the stored hash.

        An account with no stored hash never passes, whatever the candidate.
        """
        async with self.database.transaction(db) as session:
            result = await session.execute(select(User.password_hash).where(User.id == user_id))
            password_hash = result.scalar_one_or_none()
        return verify_password(candidate, password_hash)

    async def set_password(
        self,
        user_id: uuid.UUID,
        new_password: str,
        *,
        db: AsyncSession | None = None,
    ) -> bool:
        """
        Set the first password of an OTP-only account.

        Returns:
            True if the password was set, False if the account already has one
            (changing an existing password goes through the reset flow)
        """
        password_hash = get_password_hash(new_password)
        now = self.clock()

        async with self.database.transaction(db) as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id, User.password_hash.is_(None))
                .values(password_hash=password_hash, password_changed_at=now, updated_at=now)
            )
            if result.rowcount == 0:
                return False

            await self.history.record(user_id, password_hash, db=session)

        logger.info(f"Password set up for user {user_id}")
        return True
