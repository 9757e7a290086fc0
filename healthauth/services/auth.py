"""
Authentication flows built from the credential components.

Each method is one user-facing action: signup, signup verification, password
login, passwordless login, logout, first password setup, forgot and reset
password. Policy outcomes come back as AuthResult values; only storage
failures and malformed input raise.

Usage:
    auth = AuthService(Database.from_settings(), delivery=my_mailer)
    result = await auth.login_with_password(email, password, ip, user_agent)
    if result.otp_required:
        ...
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from healthauth.core.config import settings
from healthauth.core.errors import ErrorCode, user_message
from healthauth.core.exceptions import InvalidInput
from healthauth.core.logging import mask_email
from healthauth.core.security import DUMMY_PASSWORD_HASH, verify_password
from healthauth.db.session import Database
from healthauth.models.otp_code import OTPPurpose
from healthauth.models.user import User
from healthauth.models.user_session import UserSession
from healthauth.schemas.user import UserInfo
from healthauth.services.attempts import AttemptLog
from healthauth.services.credentials import CredentialStore
from healthauth.services.delivery import CodeDelivery, LoggingCodeDelivery
from healthauth.services.lockout import LockoutPolicy
from healthauth.services.otp import OTPIssuer
from healthauth.services.password_history import PasswordHistory
from healthauth.services.password_policy import validate_password_complexity
from healthauth.services.password_reset import PasswordResetFlow
from healthauth.services.sessions import SessionManager
from healthauth.utils.time import Clock, utcnow
from healthauth.utils.validation import canonical_email

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    success: bool
    error: str | None = None
    user: User | None = None
    session: UserSession | None = None
    otp_required: bool = False
    locked_minutes: int | None = None
    detail: str | None = None

    @property
    def session_token(self) -> str | None:
        return self.session.session_token if self.session else None

    @property
    def user_info(self) -> UserInfo | None:
        return UserInfo.model_validate(self.user) if self.user else None

    @property
    def message(self) -> str:
        if self.success:
            return ""
        return self.detail or user_message(self.error, self.locked_minutes)


class AuthService:
    def __init__(
        self,
        database: Database,
        delivery: CodeDelivery | None = None,
        clock: Clock = utcnow,
        require_login_otp: bool = settings.REQUIRE_LOGIN_OTP,
        max_failed_code_attempts: int = settings.OTP_MAX_FAILED_ATTEMPTS,
    ):
        self.database = database
        self.delivery = delivery or LoggingCodeDelivery()
        self.require_login_otp = require_login_otp
        self.max_failed_code_attempts = max_failed_code_attempts

        self.attempts = AttemptLog(database, clock=clock)
        self.history = PasswordHistory(database, clock=clock)
        self.credentials = CredentialStore(database, history=self.history, clock=clock)
        self.lockout = LockoutPolicy(database, clock=clock)
        self.otp = OTPIssuer(database, attempts=self.attempts, clock=clock)
        self.sessions = SessionManager(database, clock=clock)
        self.resets = PasswordResetFlow(
            database,
            history=self.history,
            sessions=self.sessions,
            lockout=self.lockout,
            clock=clock,
        )

    async def _check_code(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose,
        ip_address: str | None,
        user_agent: str | None,
    ) -> AuthResult | None:
        """Throttle then verify a code. Returns a failure result, or None on success."""
        if await self.otp.failed_attempts(email, purpose) >= self.max_failed_code_attempts:
            logger.warning(f"Code verification throttled for {mask_email(email)}")
            return AuthResult(success=False, error=ErrorCode.TOO_MANY_ATTEMPTS)

        result = await self.otp.verify(email, code, purpose, ip_address, user_agent)
        if result.valid:
            return None
        if result.attempts >= self.max_failed_code_attempts:
            return AuthResult(success=False, error=ErrorCode.TOO_MANY_ATTEMPTS)
        return AuthResult(success=False, error=ErrorCode.NOT_FOUND)

    async def signup(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
        password: str | None = None,
    ) -> User:
        """
        Register an account and send its verification code.

        Raises:
            InvalidInput: malformed email, weak password or an existing account
        """
        if password is not None:
            is_valid, message = validate_password_complexity(password, email)
            if not is_valid:
                raise InvalidInput(message)

        async with self.database.transaction() as session:
            user = await self.credentials.create_user(
                email, first_name, last_name, password=password, db=session
            )
            code = await self.otp.issue(user.email, OTPPurpose.SIGNUP, db=session)

        await self.delivery.send_otp(user.email, code, OTPPurpose.SIGNUP)
        return user

    async def verify_signup(
        self,
        email: str,
        code: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        failure = await self._check_code(email, code, OTPPurpose.SIGNUP, ip_address, user_agent)
        if failure:
            return failure

        async with self.database.transaction() as session:
            user = await self.credentials.get_user_by_email(email, db=session)
            if user is None:
                return AuthResult(success=False, error=ErrorCode.NOT_FOUND)
            await self.credentials.mark_verified(user.id, db=session)
            user_session = await self.sessions.create_session(
                user.id,
                ip_address,
                user_agent,
                ttl=timedelta(hours=settings.SIGNUP_SESSION_TTL_HOURS),
                db=session,
            )

        logger.info(f"Signup verified for user {user.id}")
        return AuthResult(success=True, user=user, session=user_session)

    async def login_with_password(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """
        Password login.

        A locked account is refused before the password is looked at. Unknown
        emails, wrong passwords and OTP-only accounts all fail with the same
        generic error and roughly the same hashing cost.
        """
        email = canonical_email(email)
        user = await self.credentials.get_user_by_email(email)

        if user is None:
            verify_password(password, DUMMY_PASSWORD_HASH)
            await self.attempts.record_login(email, False, "unknown_email", ip_address, user_agent)
            return AuthResult(success=False, error=ErrorCode.INVALID_CREDENTIALS)

        status = await self.lockout.status(user.id)
        if status.locked:
            await self.attempts.record_login(email, False, "account_locked", ip_address, user_agent)
            return AuthResult(
                success=False,
                error=ErrorCode.ACCOUNT_LOCKED,
                locked_minutes=status.remaining_minutes,
            )

        if not user.is_active or not user.has_password:
            verify_password(password, DUMMY_PASSWORD_HASH)
            reason = "inactive" if not user.is_active else "no_password"
            await self.attempts.record_login(email, False, reason, ip_address, user_agent)
            return AuthResult(success=False, error=ErrorCode.INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            async with self.database.transaction() as session:
                await self.lockout.record_failure(user.id, db=session)
                await self.attempts.record_login(
                    email, False, "invalid_password", ip_address, user_agent, db=session
                )
            return AuthResult(success=False, error=ErrorCode.INVALID_CREDENTIALS)

        code = None
        user_session = None
        async with self.database.transaction() as session:
            await self.lockout.record_success(user.id, db=session)
            await self.attempts.record_login(email, True, None, ip_address, user_agent, db=session)
            if self.require_login_otp:
                code = await self.otp.issue(email, OTPPurpose.LOGIN, db=session)
            else:
                user_session = await self.sessions.create_session(
                    user.id, ip_address, user_agent, db=session
                )

        if code is not None:
            await self.delivery.send_otp(email, code, OTPPurpose.LOGIN)
            return AuthResult(success=True, user=user, otp_required=True)
        return AuthResult(success=True, user=user, session=user_session)

    async def request_login_otp(self, email: str) -> None:
        """Send a login code. Silent for unknown or disabled accounts."""
        user = await self.credentials.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info(f"Login code requested for unknown account {mask_email(email)}")
            return

        code = await self.otp.issue(user.email, OTPPurpose.LOGIN)
        await self.delivery.send_otp(user.email, code, OTPPurpose.LOGIN)

    async def verify_login_otp(
        self,
        email: str,
        code: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        failure = await self._check_code(email, code, OTPPurpose.LOGIN, ip_address, user_agent)
        if failure:
            return failure

        async with self.database.transaction() as session:
            user = await self.credentials.get_user_by_email(email, db=session)
            if user is None or not user.is_active:
                return AuthResult(success=False, error=ErrorCode.NOT_FOUND)
            if not user.is_verified:
                # Receiving the code proves ownership of the address
                await self.credentials.mark_verified(user.id, db=session)
            user_session = await self.sessions.create_session(
                user.id, ip_address, user_agent, db=session
            )

        return AuthResult(success=True, user=user, session=user_session)

    async def logout(self, session_token: str | None) -> None:
        await self.sessions.invalidate(session_token)

    async def setup_password(self, session_token: str, password: str) -> AuthResult:
        """First password for a signed-in OTP-only user."""
        user = await self.sessions.validate(session_token)
        if user is None:
            return AuthResult(success=False, error=ErrorCode.NOT_FOUND)
        if user.has_password:
            return AuthResult(success=False, error=ErrorCode.CONFLICT, user=user)

        is_valid, message = validate_password_complexity(password, user.email)
        if not is_valid:
            return AuthResult(success=False, error=ErrorCode.INVALID_INPUT, detail=message)

        if not await self.credentials.set_password(user.id, password):
            return AuthResult(success=False, error=ErrorCode.CONFLICT, user=user)
        return AuthResult(success=True, user=user)

    async def forgot_password(self, email: str) -> None:
        """
        Send a reset link, or a setup link for accounts with no password yet.

        Returns nothing whether or not the account exists.
        """
        user = await self.credentials.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info(f"Password reset requested for unknown account {mask_email(email)}")
            return

        token = await self.resets.request_reset(user.email)
        if token:
            await self.delivery.send_password_reset(user.email, token, setup=not user.has_password)

    async def reset_password(self, token: str, new_password: str) -> AuthResult:
        email = await self.resets.verify_token(token)
        if email is None:
            return AuthResult(success=False, error=ErrorCode.NOT_FOUND)

        is_valid, message = validate_password_complexity(new_password, email)
        if not is_valid:
            return AuthResult(success=False, error=ErrorCode.INVALID_INPUT, detail=message)

        result = await self.resets.complete_password_reset(email, new_password, token)
        if not result.success:
            return AuthResult(success=False, error=result.error)
        return AuthResult(success=True)
