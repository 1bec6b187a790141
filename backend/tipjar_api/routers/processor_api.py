"""Processor-facing routes: the JSON API the donation pages call and the Stripe webhook.

These keep the browser app's response shapes, so errors are ``{"error": ...}`` bodies rather than the
``ErrorDetails`` the versioned API returns.
"""

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import (
    get_config_service,
    get_db,
    get_payment_confirmation_service,
    get_payment_dao,
    get_stripe_service,
    get_webhook_service,
)
from tipjar_api.schemas.processor import (
    LegacyCheckoutSessionRequest,
    LegacyPaymentInfoRequest,
    LegacyPaymentIntentRequest,
    LegacyPaymentIntentResponse,
    SessionStatusResponse,
    WebhookReceived,
)
from tipjar_api.services.payment_confirmation_service import PaymentConfirmationService
from tipjar_api.services.stripe_service import StripeService
from tipjar_api.services.webhook_service import WebhookService
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.core.config_service import ConfigService, settings
from tipjar_common.ids import PaymentId
from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.models.enums import PaymentStatus

router = APIRouter(prefix="/api", tags=["processor"])
logger = get_logger()

WEBHOOK_PATH = "/stripe-webhook"


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def _parse_payment_id(raw: str) -> PaymentId | None:
    try:
        return PaymentId(uuid.UUID(raw))
    except ValueError:
        return None


def _origin(request: Request) -> str:
    return request.headers.get("origin") or settings.FRONTEND_URL


@router.get("/test", response_model=None)
async def test_connection(stripe_service: Annotated[StripeService, Depends(get_stripe_service)]) -> dict[str, str] | JSONResponse:
    try:
        status = await stripe_service.check_connection()
    except AppException:
        return _error(503, "Payment service unavailable")
    return {"message": "API is working!", "stripe_status": "connected", "account_id": status.account_id}


@router.post("/create-payment-intent", response_model=None)
async def create_payment_intent(
    req: LegacyPaymentIntentRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    stripe_service: Annotated[StripeService, Depends(get_stripe_service)],
    confirmation_service: Annotated[PaymentConfirmationService, Depends(get_payment_confirmation_service)],
    config: Annotated[ConfigService, Depends(get_config_service)],
) -> LegacyPaymentIntentResponse | JSONResponse:
    if not req.amount or not req.currency:
        return _error(400, "Missing required fields")
    if req.amount < config.donations.min_amount:
        return _error(400, Errors.Donation.AMOUNT_TOO_LOW.default_message)

    try:
        payment_id = _parse_payment_id(req.payment_id) if req.payment_id else None
        if payment_id is not None:
            prepared = await confirmation_service.prepare_intent(db, payment_id, amount=req.amount, currency=req.currency)
            return LegacyPaymentIntentResponse(client_secret=prepared.client_secret, payment_intent_id=prepared.payment_intent_id)
        intent = await stripe_service.create_payment_intent(amount=req.amount, currency=req.currency)
    except AppException as e:
        logger.warning("Failed to create payment intent", code=e.details.code, message=e.details.message)
        return _error(e.http_status or 500, "Failed to create payment intent", message=e.details.message)

    return LegacyPaymentIntentResponse(client_secret=intent.client_secret, payment_intent_id=intent.payment_intent_id)


@router.post("/create-checkout-session", response_model=None)
async def create_checkout_session(
    req: LegacyCheckoutSessionRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    payment_dao: Annotated[PaymentDAO, Depends(get_payment_dao)],
    stripe_service: Annotated[StripeService, Depends(get_stripe_service)],
    config: Annotated[ConfigService, Depends(get_config_service)],
) -> dict[str, str] | JSONResponse:
    if not req.payment_id or not req.amount or not req.currency:
        return _error(400, "Missing required fields")

    payment_id = _parse_payment_id(req.payment_id)
    payment = await payment_dao.get(db, payment_id) if payment_id else None
    if payment is None:
        return _error(404, "Payment not found")
    if payment.status != PaymentStatus.PENDING:
        return _error(400, "Payment is no longer pending")
    if req.amount != payment.amount or req.currency.upper() != payment.currency.upper():
        return _error(400, "Amount does not match the donation")
    if payment.amount < config.donations.min_amount:
        return _error(400, Errors.Donation.AMOUNT_TOO_LOW.default_message)

    try:
        session = await stripe_service.create_checkout_session(
            payment_id=payment.id,
            amount=payment.amount,
            currency=payment.currency,
            origin=_origin(request),
            email=req.email,
            name=req.name,
            description=req.description,
        )
    except AppException as e:
        return _error(e.http_status or 500, "Failed to create checkout session", message=e.details.message)

    return {"id": session.id, "url": session.url}


@router.post("/payment-info", response_model=None)
async def payment_info(
    req: LegacyPaymentInfoRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    confirmation_service: Annotated[PaymentConfirmationService, Depends(get_payment_confirmation_service)],
) -> dict[str, Any] | JSONResponse:
    """Success callback of the embedded payment form."""
    if not req.payment_id or not req.stripe_payment_id:
        return _error(400, "Missing required fields")
    payment_id = _parse_payment_id(req.payment_id)
    if payment_id is None:
        return _error(404, "Payment not found")

    try:
        result = await confirmation_service.confirm(db, payment_id, processor_payment_id=req.stripe_payment_id)
    except AppException as e:
        if Errors.Processor.CONFIRMATION_FAILED.is_(e):
            return _error(400, e.details.message)
        return _error(e.http_status or 500, "Failed to store payment info", message=e.details.message)

    body: dict[str, Any] = {"success": result.succeeded, "recorded": result.recorded}
    if result.notice:
        body["notice"] = result.notice
    return body


@router.get("/check-session-status", response_model=None)
async def check_session_status(
    stripe_service: Annotated[StripeService, Depends(get_stripe_service)],
    session_id: str | None = None,
) -> SessionStatusResponse | JSONResponse:
    if not session_id:
        return _error(400, "Missing session_id parameter")
    try:
        session = await stripe_service.retrieve_checkout_session(session_id)
    except AppException:
        return _error(500, "Failed to check session status", status="error")
    return SessionStatusResponse(status="complete" if session.is_paid else "incomplete", payment_status=session.payment_status)


@router.post(WEBHOOK_PATH, response_model=None)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    webhook_service: Annotated[WebhookService, Depends(get_webhook_service)],
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> WebhookReceived | JSONResponse:
    # Signature verification needs the exact bytes that were signed
    payload = await request.body()
    try:
        return await webhook_service.handle(db, payload, stripe_signature)
    except AppException as e:
        if AppException.is_any_of(e, Errors.Webhook.MISSING_SIGNATURE, Errors.Webhook.INVALID_SIGNATURE):
            return _error(400, "Webhook signature verification failed")
        return _error(500, "Webhook handler failed")
    except Exception:
        logger.exception("Webhook handler failed unexpectedly")
        return _error(500, "Webhook handler failed")


@router.api_route(WEBHOOK_PATH, methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def stripe_webhook_method_not_allowed() -> JSONResponse:
    return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers={"Allow": "POST"})
