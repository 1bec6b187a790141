"""Processor webhook handling: signature verification, event dispatch and completion bookkeeping."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.processor import CheckoutSessionObject, StripeEvent, StripeEventType, WebhookReceived
from tipjar_api.services.payment_completion import PaymentCompletionBookkeeper
from tipjar_api.services.payment_confirmation_service import PaymentConfirmationService
from tipjar_api.services.stripe_service import StripeService
from tipjar_common.core.app_error import Errors
from tipjar_common.ids import PaymentId
from tipjar_common.utils.utils import get_now, get_logger
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.schemas.payment import CheckoutCompletion

logger = get_logger()


def _parse_payment_id(raw: str | None) -> PaymentId | None:
    if not raw:
        return None
    try:
        return PaymentId(uuid.UUID(raw))
    except ValueError:
        return None


class WebhookService:
    """Verifies and applies processor events.

    Redelivered events are safe: the completion fields are set again and bookkeeping runs only on the
    first transition into ``completed``.
    """

    def __init__(
        self,
        stripe_service: StripeService,
        payment_dao: PaymentDAO,
        bookkeeper: PaymentCompletionBookkeeper,
        confirmation_service: PaymentConfirmationService | None = None,
    ) -> None:
        self.stripe_service = stripe_service
        self.payment_dao = payment_dao
        self.bookkeeper = bookkeeper
        self.confirmation_service = confirmation_service

    async def handle(self, db: AsyncSession, payload: bytes, signature: str | None) -> WebhookReceived:
        # Signature errors propagate as 400 before anything is read or written
        event = self.stripe_service.construct_event(payload, signature)
        logger.info("Webhook event received", event_id=event.id, event_type=event.type)

        try:
            await self._dispatch(db, event)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.exception("Webhook handler failed", event_id=event.id, event_type=event.type)
            raise Errors.Webhook.HANDLER_FAILED.create(details={"event_id": event.id, "event_type": event.type}) from e

        return WebhookReceived()

    async def _dispatch(self, db: AsyncSession, event: StripeEvent) -> None:
        match event.type:
            case StripeEventType.CHECKOUT_SESSION_COMPLETED:
                await self._on_checkout_completed(db, CheckoutSessionObject.model_validate(event.data.object))
            case StripeEventType.PAYMENT_INTENT_SUCCEEDED:
                logger.info("Payment intent succeeded", payment_intent_id=event.data.object.get("id"))
            case StripeEventType.PAYMENT_INTENT_FAILED:
                error = event.data.object.get("last_payment_error") or {}
                logger.warning("Payment intent failed", payment_intent_id=event.data.object.get("id"), reason=error.get("message"))
            case _:
                logger.info("Unhandled webhook event type", event_type=event.type)

    async def _on_checkout_completed(self, db: AsyncSession, session: CheckoutSessionObject) -> None:
        payment_id = _parse_payment_id(session.metadata.payment_id)
        if payment_id is None:
            logger.warning("Checkout session without a usable payment id", session_id=session.id, raw=session.metadata.payment_id)
            return

        payment = await self.payment_dao.get(db, payment_id)
        if payment is None:
            logger.warning("Checkout session for unknown payment", session_id=session.id, payment_id=payment_id)
            return

        completion = CheckoutCompletion(
            stripe_session_id=session.id,
            payment_amount=session.amount_total,
            payment_currency=session.currency.upper() if session.currency else None,
            customer_email=session.email,
            customer_name=session.metadata.name,
        )
        if completion.payment_amount != payment.amount or completion.payment_currency != payment.currency.upper():
            logger.error(
                "Captured amount does not match the donation",
                session_id=session.id,
                payment_id=payment_id,
                captured_amount=completion.payment_amount,
                captured_currency=completion.payment_currency,
                amount=payment.amount,
                currency=payment.currency,
            )
            await self.payment_dao.reject_checkout(db, payment_id, completion=completion)
            self._forget_prepared(payment_id)
            return

        result = await self.payment_dao.complete_checkout(db, payment_id, completion=completion, completed_at=get_now())
        if result is None:
            logger.warning("Checkout session for unknown payment", session_id=session.id, payment_id=payment_id)
            return

        self._forget_prepared(payment_id)
        if result.newly_completed:
            await self.bookkeeper.on_completed(db, result.payment)
        else:
            logger.info("Checkout session redelivered for completed payment", session_id=session.id, payment_id=payment_id)

    def _forget_prepared(self, payment_id: PaymentId) -> None:
        if self.confirmation_service is not None:
            self.confirmation_service.forget(payment_id)
