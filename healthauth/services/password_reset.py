"""
Password reset tokens.

Requested -> consumed | expired. At most one live token exists per email:
requesting a new one deletes the earlier ones. Verifying a token does not
consume it; only a completed reset does, and the completion is a single
transaction so a failure part way leaves the token usable for a retry.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.core.errors import ErrorCode
from healthauth.core.exceptions import InvalidInput
from healthauth.core.security import generate_reset_token, get_password_hash, is_password_hash, verify_password
from healthauth.db.session import Database
from healthauth.models.password_reset_token import PasswordResetToken
from healthauth.models.user import User
from healthauth.services.lockout import LockoutPolicy
from healthauth.services.password_history import PasswordHistory
from healthauth.services.sessions import SessionManager
from healthauth.utils.time import Clock, utcnow
from healthauth.utils.validation import canonical_email

logger = logging.getLogger(__name__)


@dataclass
class PasswordResetResult:
    success: bool
    error: str | None = None
    sessions_revoked: int = 0


class PasswordResetFlow:
    def __init__(
        self,
        database: Database,
        history: PasswordHistory | None = None,
        sessions: SessionManager | None = None,
        lockout: LockoutPolicy | None = None,
        clock: Clock = utcnow,
        token_expire_minutes: int = settings.RESET_TOKEN_EXPIRE_MINUTES,
        revoke_sessions: bool = settings.REVOKE_SESSIONS_ON_PASSWORD_RESET,
    ):
        self.database = database
        self.clock = clock
        self.history = history or PasswordHistory(database, clock=clock)
        self.sessions = sessions or SessionManager(database, clock=clock)
        self.lockout = lockout or LockoutPolicy(database, clock=clock)
        self.token_lifetime = timedelta(minutes=token_expire_minutes)
        self.revoke_sessions = revoke_sessions

    async def request_reset(self, email: str, *, db: AsyncSession | None = None) -> str | None:
        """
        Issue a reset token for an existing account.

        Returns:
            The token, or None when no account has this email. Callers must
            answer both cases identically.
        """
        email = canonical_email(email)
        now = self.clock()

        async with self.database.transaction(db) as session:
            result = await session.execute(select(User.id).where(User.email == email))
            if result.scalar_one_or_none() is None:
                logger.info("Password reset requested for unknown email")
                return None

            await session.execute(
                delete(PasswordResetToken)
                .where(PasswordResetToken.email == email)
                .execution_options(synchronize_session=False)
            )
            token = generate_reset_token()
            session.add(
                PasswordResetToken(
                    email=email,
                    token=token,
                    is_used=False,
                    expires_at=now + self.token_lifetime,
                    created_at=now,
                )
            )

        logger.info("Password reset token issued")
        return token

    async def verify_token(self, token: str | None, *, db: AsyncSession | None = None) -> str | None:
        """Email bound to a live token. Does not consume it."""
        if not token:
            return None
        now = self.clock()
        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(PasswordResetToken).where(PasswordResetToken.token == token)
            )
            reset_token = result.scalar_one_or_none()
        if reset_token is None or not reset_token.is_usable_at(now):
            return None
        return reset_token.email

    async def complete_password_reset(
        self,
        email: str,
        new_password: str,
        token: str,
    ) -> PasswordResetResult:
        """
        Consume a token and replace the account's password.

        Args:
            email: The address the token was issued to
            new_password: Plaintext; complexity is checked before this call
            token: The reset token

        Returns:
            PasswordResetResult; NOT_FOUND for a bad, foreign, used or expired
            token, ALREADY_USED when the password matches recent history
        """
        if is_password_hash(new_password):
            raise InvalidInput("New password must be plaintext, not a hash")

        email = canonical_email(email)
        now = self.clock()

        async with self.database.transaction() as session:
            result = await session.execute(
                select(PasswordResetToken)
                .where(PasswordResetToken.token == token)
                .with_for_update()
            )
            reset_token = result.scalar_one_or_none()
            if reset_token is None or reset_token.email != email or not reset_token.is_usable_at(now):
                return PasswordResetResult(success=False, error=ErrorCode.NOT_FOUND)

            result = await session.execute(select(User).where(User.email == email).with_for_update())
            user = result.scalar_one_or_none()
            if user is None:
                return PasswordResetResult(success=False, error=ErrorCode.NOT_FOUND)

            if verify_password(new_password, user.password_hash) or await self.history.was_recently_used(
                user.id, new_password, db=session
            ):
                logger.info("Password reset rejected: password used recently")
                return PasswordResetResult(success=False, error=ErrorCode.ALREADY_USED)

            new_hash = get_password_hash(new_password)
            reset_token.is_used = True
            user.password_hash = new_hash
            user.password_changed_at = now
            user.updated_at = now
            await session.flush()

            await self.lockout.record_success(user.id, db=session)
            await self.history.record(user.id, new_hash, db=session)

            revoked = 0
            if self.revoke_sessions:
                revoked = await self.sessions.invalidate_all(user.id, db=session)

        logger.info(f"Password reset completed for user {user.id}")
        return PasswordResetResult(success=True, sessions_revoked=revoked)
