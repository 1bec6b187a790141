"""Phone ownership verification backends."""

from __future__ import annotations

import hmac
import re
from typing import Protocol

from tipjar_api.schemas.onboarding import PhoneCodeSent
from tipjar_common.utils.utils import get_logger

logger = get_logger()


def mask_phone(phone_number: str) -> str:
    digits = re.sub(r"\D", "", phone_number)
    return f"****-****-{digits[-4:]}" if len(digits) >= 4 else "****-****-****"


class PhoneVerifier(Protocol):
    async def send_code(self, phone_number: str) -> PhoneCodeSent: ...

    async def verify_code(self, phone_number: str, code: str) -> bool: ...


class StaticCodePhoneVerifier:
    """Stand-in for an SMS provider: nothing is sent and one configured code is accepted.

    Select a real provider through ``PHONE_VERIFIER`` once one is integrated.
    """

    def __init__(self, expected_code: str, resend_seconds: int = 60) -> None:
        self.expected_code = expected_code
        self.resend_seconds = resend_seconds

    async def send_code(self, phone_number: str) -> PhoneCodeSent:
        masked = mask_phone(phone_number)
        logger.info("Verification code requested (static verifier, no SMS sent)", masked_phone=masked)
        return PhoneCodeSent(masked_phone=masked, resend_after_seconds=self.resend_seconds)

    async def verify_code(self, phone_number: str, code: str) -> bool:
        return hmac.compare_digest(code.strip(), self.expected_code)
