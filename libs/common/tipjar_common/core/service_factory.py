"""Service factory for choosing between real and stand-in services based on configuration."""

import os

from tipjar_common.core.config_service import ConfigService
from tipjar_common.utils.utils import get_logger

logger = get_logger(__name__)


def get_phone_verifier():
    """Factory function to get the phone verification backend.

    Only the static-code verifier exists today; PHONE_VERIFIER selects it explicitly.
    """
    config = ConfigService()
    backend = os.getenv("PHONE_VERIFIER", "static").lower()
    logger.info("Phone verifier resolution", backend=backend, app_env=config.get_environment())
    if backend != "static":
        logger.warning("Unknown phone verifier backend, using static code verifier", backend=backend)

    from tipjar_api.services.phone_verifier import StaticCodePhoneVerifier

    return StaticCodePhoneVerifier(
        expected_code=config.donations.phone_otp_code,
        resend_seconds=config.donations.otp_resend_seconds,
    )


_jwt_validator = None


def get_jwt_validator():
    """Factory function to get the shared JWT validator. The JWKS document is fetched once per process."""
    global _jwt_validator
    if _jwt_validator is None:
        from tipjar_common.core.jwt_utils import JWTValidator

        _jwt_validator = JWTValidator()
    return _jwt_validator
