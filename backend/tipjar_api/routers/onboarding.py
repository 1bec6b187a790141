from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_current_creator, get_db, get_onboarding_service
from tipjar_api.schemas.onboarding import (
    AccountTypeRequest,
    IconSelectionRequest,
    OnboardingState,
    OnboardingStep,
    PhoneCodeSent,
    PhoneVerifyRequest,
)
from tipjar_api.services.onboarding_service import OnboardingService
from tipjar_common.core.logging_service import get_logger
from tipjar_db.schemas.payout import BankAccountData
from tipjar_db.schemas.profile import ProfileResponse
from tipjar_db.schemas.verification import PersonalDataFields

logger = get_logger(__name__)

onboarding_router = APIRouter(prefix="/onboarding")


@onboarding_router.get("", response_model=OnboardingState)
async def get_onboarding_state(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    """Where the creator resumes, derived from what they already saved."""
    return await onboarding_service.state(db, current_creator)


@onboarding_router.get("/steps/{step}")
async def get_step_data(
    step: OnboardingStep,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> dict[str, Any]:
    return await onboarding_service.step_data(db, current_creator, step)


@onboarding_router.post("/account-type", response_model=OnboardingState)
async def submit_account_type(
    req: AccountTypeRequest,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    return await onboarding_service.submit_account_type(db, current_creator, req.account_type)


@onboarding_router.post("/personal-data", response_model=OnboardingState)
async def submit_personal_data(
    data: PersonalDataFields,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    return await onboarding_service.submit_personal_data(db, current_creator, data)


@onboarding_router.post("/phone/send-code", response_model=PhoneCodeSent)
async def send_phone_code(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> PhoneCodeSent:
    sent = await onboarding_service.send_phone_code(db, current_creator)
    logger.info("Phone verification code sent", user_id=str(current_creator.id), masked_phone=sent.masked_phone)
    return sent


@onboarding_router.post("/phone/verify", response_model=OnboardingState)
async def verify_phone(
    req: PhoneVerifyRequest,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    return await onboarding_service.verify_phone(db, current_creator, req.code)


@onboarding_router.post("/icons", response_model=OnboardingState)
async def submit_icons(
    req: IconSelectionRequest,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    return await onboarding_service.submit_icons(db, current_creator, req)


@onboarding_router.post("/bank-account", response_model=OnboardingState)
async def submit_bank_account(
    data: BankAccountData,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    return await onboarding_service.submit_bank_account(db, current_creator, data)


@onboarding_router.post("/bank-account/skip", response_model=OnboardingState)
async def skip_bank_account(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    onboarding_service: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingState:
    logger.info("Bank account step skipped", user_id=str(current_creator.id))
    return await onboarding_service.skip_bank_account(db, current_creator)
