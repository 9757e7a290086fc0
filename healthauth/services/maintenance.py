"""
Housekeeping for expired credentials.

Optional: every read path already ignores expired codes, tokens and sessions,
so this only keeps the tables small. Safe to run from any scheduler.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthauth.db.session import Database
from healthauth.models.otp_code import OTPCode
from healthauth.models.password_reset_token import PasswordResetToken
from healthauth.models.user_session import UserSession
from healthauth.utils.time import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    otp_codes: int = 0
    reset_tokens: int = 0
    sessions: int = 0


async def purge_expired(
    database: Database,
    clock: Clock = utcnow,
    *,
    db: AsyncSession | None = None,
) -> PurgeResult:
    """
    Delete used or expired codes and reset tokens, and deactivate sessions
    past their absolute expiry.

    Opens its own transaction unless `db` is given.
    """
    now = clock()

    async with database.transaction(db) as session:
        result = await _purge(session, now)

    if result.otp_codes or result.reset_tokens or result.sessions:
        logger.info(
            f"Purged {result.otp_codes} codes, {result.reset_tokens} reset tokens, "
            f"deactivated {result.sessions} sessions"
        )
    return result


async def _purge(db: AsyncSession, now: datetime) -> PurgeResult:
    codes = await db.execute(
        delete(OTPCode)
        .where(or_(OTPCode.is_used.is_(True), OTPCode.expires_at <= now))
        .execution_options(synchronize_session=False)
    )
    tokens = await db.execute(
        delete(PasswordResetToken)
        .where(or_(PasswordResetToken.is_used.is_(True), PasswordResetToken.expires_at <= now))
        .execution_options(synchronize_session=False)
    )
    sessions = await db.execute(
        update(UserSession)
        .where(UserSession.is_active.is_(True), UserSession.expires_at <= now)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )

    return PurgeResult(
        otp_codes=codes.rowcount,
        reset_tokens=tokens.rowcount,
        sessions=sessions.rowcount,
    )
