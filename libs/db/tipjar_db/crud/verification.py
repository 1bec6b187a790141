from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import UserId
from tipjar_db.models.enums import KycStatus
from tipjar_db.models.verification import PersonalData, UserVerification
from tipjar_db.schemas.verification import PersonalDataFields, PersonalDataResponse, VerificationResponse


class VerificationDAO:
    async def get(self, db: AsyncSession, user_id: UserId) -> VerificationResponse | None:
        row = await db.get(UserVerification, user_id)
        return VerificationResponse.model_validate(row) if row else None

    async def _get_or_add(self, db: AsyncSession, user_id: UserId) -> UserVerification:
        row = await db.get(UserVerification, user_id)
        if row is None:
            row = UserVerification(user_id=user_id, kyc_status=KycStatus.NOT_STARTED, phone_verified=False)
            db.add(row)
        return row

    async def set_kyc_status(
        self,
        db: AsyncSession,
        user_id: UserId,
        *,
        status: KycStatus,
        reference: str | None = None,
        completed_at: datetime | None = None,
    ) -> VerificationResponse:
        row = await self._get_or_add(db, user_id)
        row.kyc_status = status
        if reference is not None:
            row.kyc_reference = reference
        if completed_at is not None:
            row.kyc_completed_at = completed_at
        await db.flush()
        await db.refresh(row)
        return VerificationResponse.model_validate(row)

    async def mark_phone_verified(self, db: AsyncSession, user_id: UserId, *, verified_at: datetime) -> VerificationResponse:
        row = await self._get_or_add(db, user_id)
        row.phone_verified = True
        row.phone_verified_at = verified_at
        await db.flush()
        await db.refresh(row)
        return VerificationResponse.model_validate(row)


class PersonalDataDAO:
    async def get(self, db: AsyncSession, user_id: UserId) -> PersonalDataResponse | None:
        row = await db.get(PersonalData, user_id)
        return PersonalDataResponse.model_validate(row) if row else None

    async def upsert(self, db: AsyncSession, user_id: UserId, *, data: PersonalDataFields) -> PersonalDataResponse:
        row = await db.get(PersonalData, user_id)
        if row is None:
            row = PersonalData(user_id=user_id)
            db.add(row)
        for field, value in data.model_dump().items():
            setattr(row, field, value)
        await db.flush()
        await db.refresh(row)
        return PersonalDataResponse.model_validate(row)
