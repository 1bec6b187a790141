from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_db, get_donation_service, get_payment_confirmation_service
from tipjar_api.schemas.donation import ConfirmationResult, ConfirmPaymentRequest, DonationCreated, DonationCreateRequest, PreparedIntent, PrepareIntentRequest
from tipjar_api.services.donation_service import DonationService
from tipjar_api.services.payment_confirmation_service import PaymentConfirmationService
from tipjar_common.core.config_service import settings
from tipjar_common.ids import PaymentId

donations_router = APIRouter()


@donations_router.post("/creators/{username}/donations", response_model=DonationCreated)
async def create_donation(
    username: str,
    req: DonationCreateRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    donation_service: Annotated[DonationService, Depends(get_donation_service)],
) -> DonationCreated:
    """Create a pending donation and the hosted checkout session the donor is redirected to."""
    origin = request.headers.get("origin") or settings.FRONTEND_URL
    return await donation_service.create_donation(db, creator_username=username, request=req, origin=origin)


@donations_router.post("/payments/{payment_id}/intent", response_model=PreparedIntent)
async def prepare_payment_intent(
    payment_id: PaymentId,
    req: PrepareIntentRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    confirmation_service: Annotated[PaymentConfirmationService, Depends(get_payment_confirmation_service)],
) -> PreparedIntent:
    return await confirmation_service.prepare_intent(db, payment_id, amount=req.amount, currency=req.currency)


@donations_router.post("/payments/{payment_id}/confirm", response_model=ConfirmationResult)
async def confirm_payment(
    payment_id: PaymentId,
    req: ConfirmPaymentRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    confirmation_service: Annotated[PaymentConfirmationService, Depends(get_payment_confirmation_service)],
) -> ConfirmationResult:
    return await confirmation_service.confirm(db, payment_id, processor_payment_id=req.processor_payment_id)
