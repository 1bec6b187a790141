from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_current_admin, get_current_creator, get_db, get_verification_service
from tipjar_api.schemas.verification import KycStatusUpdate
from tipjar_api.services.verification_service import VerificationService
from tipjar_common.ids import UserId
from tipjar_db.schemas.profile import ProfileResponse
from tipjar_db.schemas.verification import VerificationResponse

verification_router = APIRouter()


@verification_router.get("/verification", response_model=VerificationResponse)
async def get_verification_status(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    verification_service: Annotated[VerificationService, Depends(get_verification_service)],
) -> VerificationResponse:
    return await verification_service.get_status(db, current_creator.id)


@verification_router.post("/verification/kyc", response_model=VerificationResponse)
async def start_kyc(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    verification_service: Annotated[VerificationService, Depends(get_verification_service)],
) -> VerificationResponse:
    return await verification_service.initialize_kyc(db, current_creator.id)


@verification_router.put("/admin/verifications/{user_id}", response_model=VerificationResponse)
async def update_kyc_status(
    user_id: UserId,
    update: KycStatusUpdate,
    _admin: Annotated[ProfileResponse, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    verification_service: Annotated[VerificationService, Depends(get_verification_service)],
) -> VerificationResponse:
    """Record the identity provider's verdict for a creator."""
    return await verification_service.update_kyc_status(db, user_id, status=update.status, reference=update.reference)
