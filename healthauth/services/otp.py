"""
One-time code issuance and verification.

Codes are six uniformly random digits scoped by (email, purpose). Issuing
replaces any earlier code for the scope; a code verifies at most once.
Every verification attempt is written to the attempt log, and failed ones
inside the trailing window are what throttling counts.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.core.config import settings
from healthauth.core.errors import ErrorCode
from healthauth.core.exceptions import InvalidInput
from healthauth.core.security import generate_otp_code
from healthauth.db.session import Database
from healthauth.models.otp_code import DeliveryMethod, OTPCode, OTPPurpose
from healthauth.services.attempts import AttemptLog
from healthauth.utils.time import Clock, utcnow
from healthauth.utils.validation import canonical_email

logger = logging.getLogger(__name__)


@dataclass
class OTPVerificationResult:
    """Outcome of one verification attempt."""

    valid: bool
    attempts: int = 0  # failed attempts in the window, this one included
    error: str | None = None


def _coerce_purpose(purpose: OTPPurpose | str) -> OTPPurpose:
    try:
        return OTPPurpose(purpose)
    except ValueError as e:
        raise InvalidInput(f"Unknown code purpose: {purpose}") from e


class OTPIssuer:
    def __init__(
        self,
        database: Database,
        attempts: AttemptLog | None = None,
        clock: Clock = utcnow,
    ):
        self.database = database
        self.clock = clock
        self.attempts = attempts or AttemptLog(database, clock=clock)

    async def issue(
        self,
        email: str,
        purpose: OTPPurpose | str,
        expiry_minutes: int = settings.OTP_EXPIRE_MINUTES,
        delivery_method: DeliveryMethod = DeliveryMethod.EMAIL,
        *,
        db: AsyncSession | None = None,
    ) -> str:
        """
        Generate and store a new code, replacing any earlier one.

        Returns:
            The plaintext code, for handing to the delivery channel
        """
        purpose = _coerce_purpose(purpose)
        if expiry_minutes <= 0:
            raise InvalidInput("Code expiry must be positive")

        email = canonical_email(email)
        now = self.clock()
        code = generate_otp_code()

        async with self.database.transaction(db) as session:
            await session.execute(
                delete(OTPCode)
                .where(OTPCode.email == email, OTPCode.code_type == purpose)
                .execution_options(synchronize_session=False)
            )
            session.add(
                OTPCode(
                    email=email,
                    code=code,
                    code_type=purpose,
                    delivery_method=delivery_method,
                    is_used=False,
                    expires_at=now + timedelta(minutes=expiry_minutes),
                    created_at=now,
                )
            )

        logger.info(f"Issued {purpose.value} code, expires in {expiry_minutes} minutes")
        return code

    async def verify(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose | str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        *,
        db: AsyncSession | None = None,
    ) -> OTPVerificationResult:
        """
        Check a submitted code and consume it on a match.

        Expired, already used and never issued codes all fail the same way.
        The newest live code row is locked for the check so two concurrent
        submissions of the same code cannot both succeed.
        """
        purpose = _coerce_purpose(purpose)
        email = canonical_email(email)
        submitted = (code or "").strip()
        now = self.clock()

        async with self.database.transaction(db) as session:
            result = await session.execute(
                select(OTPCode)
                .where(
                    OTPCode.email == email,
                    OTPCode.code_type == purpose,
                    OTPCode.is_used.is_(False),
                    OTPCode.expires_at > now,
                )
                .order_by(OTPCode.created_at.desc(), OTPCode.id.desc())
                .limit(1)
                .with_for_update()
            )
            otp = result.scalar_one_or_none()

            valid = otp is not None and hmac.compare_digest(
                otp.code.encode(), submitted.encode()
            )
            if valid:
                otp.is_used = True

            await self.attempts.record_verification(
                email, purpose, valid, ip_address, user_agent, db=session
            )
            if valid:
                return OTPVerificationResult(valid=True)

            failed = await self.attempts.count_failed_verifications(email, purpose, db=session)

        logger.info(f"Code verification failed for {purpose.value}: {failed} failures in window")
        return OTPVerificationResult(valid=False, attempts=failed, error=ErrorCode.NOT_FOUND)

    async def failed_attempts(
        self,
        email: str,
        purpose: OTPPurpose | str,
        *,
        db: AsyncSession | None = None,
    ) -> int:
        return await self.attempts.count_failed_verifications(email, _coerce_purpose(purpose), db=db)
