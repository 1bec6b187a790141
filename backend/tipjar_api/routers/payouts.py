from typing import Annotated

from fastapi import APIRouter, Depends

from tipjar_api.dependencies import get_payout_service, require_onboarding_completed
from tipjar_api.schemas.payout import AvailableBalance, PayoutRequest
from tipjar_api.services.creator_session import CreatorSession
from tipjar_api.services.payout_service import PayoutService
from tipjar_db.schemas.payout import BankAccountData, BankAccountResponse, PayoutResponse, PayoutWithBankAccount

payouts_router = APIRouter()


@payouts_router.get("/payouts/balance", response_model=AvailableBalance)
async def get_available_balance(
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    payout_service: Annotated[PayoutService, Depends(get_payout_service)],
) -> AvailableBalance:
    return await payout_service.balance(session)


@payouts_router.get("/payouts", response_model=list[PayoutWithBankAccount])
async def list_payouts(
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    payout_service: Annotated[PayoutService, Depends(get_payout_service)],
) -> list[PayoutWithBankAccount]:
    return await payout_service.history(session.db, session.user_id)


@payouts_router.post("/payouts", response_model=PayoutResponse, status_code=201)
async def request_payout(
    req: PayoutRequest,
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    payout_service: Annotated[PayoutService, Depends(get_payout_service)],
) -> PayoutResponse:
    """Request a payout. The amount is given in PLN, e.g. ``"10.50"``."""
    return await payout_service.request_payout(session, req)


@payouts_router.get("/bank-account", response_model=BankAccountResponse)
async def get_bank_account(
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    payout_service: Annotated[PayoutService, Depends(get_payout_service)],
) -> BankAccountResponse:
    return await payout_service.get_bank_account(session.db, session.user_id)


@payouts_router.put("/bank-account", response_model=BankAccountResponse)
async def save_bank_account(
    data: BankAccountData,
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    payout_service: Annotated[PayoutService, Depends(get_payout_service)],
) -> BankAccountResponse:
    return await payout_service.save_bank_account(session.db, session.user_id, data)
