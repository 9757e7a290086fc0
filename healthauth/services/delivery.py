"""
Outbound delivery of codes and reset links.

Transport (SMTP, SMS gateways) lives outside this package. Callers provide an
object satisfying `CodeDelivery`; `LoggingCodeDelivery` is the development
stand-in and never writes the secret itself to the log.
"""

import logging
from typing import Protocol

from healthauth.core.logging import mask_email
from healthauth.models.otp_code import OTPPurpose

logger = logging.getLogger(__name__)


class CodeDelivery(Protocol):
    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None: ...

    async def send_password_reset(self, email: str, token: str, setup: bool = False) -> None: ...


class LoggingCodeDelivery:
    """Records what would have been sent."""

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        logger.info(f"Would send {purpose.value} code to {mask_email(email)}")

    async def send_password_reset(self, email: str, token: str, setup: bool = False) -> None:
        kind = "password setup" if setup else "password reset"
        logger.info(f"Would send {kind} link to {mask_email(email)}")
