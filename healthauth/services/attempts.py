"""
Audit trail for login and verification attempts.

Usage:
    attempts = AttemptLog(database)
    await attempts.record_verification(email, OTPPurpose.LOGIN, False, ip, ua, db=db)

Rows are only ever inserted. Writes join the caller's transaction when a
session is passed, so an attempt is recorded together with the outcome it
describes.
"""
import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.db.session import Database
from healthauth.models.login_attempt import LoginAttempt
from healthauth.models.otp_code import OTPPurpose
from healthauth.models.verification_attempt import VerificationAttempt
from healthauth.utils.request import clean_ip_address, clean_user_agent
from healthauth.utils.time import Clock, utcnow
from healthauth.utils.validation import canonical_email

logger = logging.getLogger(__name__)


class AttemptLog:
    def __init__(
        self,
        database: Database,
        clock: Clock = utcnow,
        window_minutes: int = settings.OTP_ATTEMPT_WINDOW_MINUTES,
    ):
        self.database = database
        self.clock = clock
        self.window = timedelta(minutes=window_minutes)

    async def record_verification(
        self,
        email: str,
        attempt_type: OTPPurpose,
        is_successful: bool,
        ip_address: str | None = None,
        user_agent: str | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> VerificationAttempt:
        """Append a verification attempt row."""
        attempt = VerificationAttempt(
            email=canonical_email(email),
            attempt_type=attempt_type,
            is_successful=is_successful,
            ip_address=clean_ip_address(ip_address),
            user_agent=clean_user_agent(user_agent),
            created_at=self.clock(),
        )
        async with self.database.transaction(db) as session:
            session.add(attempt)
            await session.flush()
        return attempt

    async def count_failed_verifications(
        self,
        email: str,
        attempt_type: OTPPurpose,
        *,
        db: AsyncSession | None = None,
    ) -> int:
        """Count failed verification attempts inside the trailing window."""
        cutoff = self.clock() - self.window
        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(func.count()).select_from(VerificationAttempt).where(
                    VerificationAttempt.email == canonical_email(email),
                    VerificationAttempt.attempt_type == attempt_type,
                    VerificationAttempt.is_successful.is_(False),
                    VerificationAttempt.created_at > cutoff,
                )
            )
            return result.scalar() or 0

    async def record_login(
        self,
        email: str,
        is_successful: bool,
        failure_reason: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> LoginAttempt:
        """Append a password login attempt row."""
        attempt = LoginAttempt(
            email=canonical_email(email),
            is_successful=is_successful,
            failure_reason=failure_reason,
            ip_address=clean_ip_address(ip_address),
            user_agent=clean_user_agent(user_agent),
            created_at=self.clock(),
        )
        async with self.database.transaction(db) as session:
            session.add(attempt)
            await session.flush()
        if not is_successful:
            logger.info(f"Login failed: reason={failure_reason}")
        return attempt

    async def count_failed_logins(
        self,
        email: str,
        window_minutes: int,
        *,
        db: AsyncSession | None = None,
    ) -> int:
        """Count failed password logins for an account within the time window."""
        cutoff = self.clock() - timedelta(minutes=window_minutes)
        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(func.count()).select_from(LoginAttempt).where(
                    LoginAttempt.email == canonical_email(email),
                    LoginAttempt.is_successful.is_(False),
                    LoginAttempt.created_at > cutoff,
                )
            )
            return result.scalar() or 0
