"""Identity verification (KYC) status. The external provider reports results through the admin endpoint."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.core.app_error import Errors
from tipjar_common.ids import UserId
from tipjar_common.utils.utils import get_now, get_logger
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import VerificationDAO
from tipjar_db.models.enums import KycStatus
from tipjar_db.schemas.verification import VerificationResponse

logger = get_logger()


class VerificationService:
    def __init__(self, verification_dao: VerificationDAO, profile_dao: ProfileDAO) -> None:
        self.verification_dao = verification_dao
        self.profile_dao = profile_dao

    async def get_status(self, db: AsyncSession, user_id: UserId) -> VerificationResponse:
        status = await self.verification_dao.get(db, user_id)
        return status or VerificationResponse(user_id=user_id)

    async def initialize_kyc(self, db: AsyncSession, user_id: UserId) -> VerificationResponse:
        """Start verification. An already verified user stays verified."""
        current = await self.get_status(db, user_id)
        if current.kyc_status == KycStatus.VERIFIED:
            return current
        status = await self.verification_dao.set_kyc_status(db, user_id, status=KycStatus.PENDING)
        logger.info("KYC started", user_id=user_id, previous_status=current.kyc_status)
        return status

    async def update_kyc_status(self, db: AsyncSession, user_id: UserId, *, status: KycStatus, reference: str | None = None) -> VerificationResponse:
        if await self.profile_dao.get(db, user_id) is None:
            raise Errors.Profile.NOT_FOUND.create(details={"user_id": str(user_id)})
        completed_at = get_now() if status == KycStatus.VERIFIED else None
        result = await self.verification_dao.set_kyc_status(db, user_id, status=status, reference=reference, completed_at=completed_at)
        logger.info("KYC status updated", user_id=user_id, kyc_status=status, reference=reference)
        return result
