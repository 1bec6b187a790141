"""Embedded payment flow: client secret preparation and the success callback."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.donation import ConfirmationResult, PreparedIntent
from tipjar_api.schemas.processor import PaymentIntentResult, ProcessorPaymentIntent
from tipjar_api.services.payment_completion import PaymentCompletionBookkeeper
from tipjar_api.services.stripe_service import StripeService
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.core.config_service import ConfigService
from tipjar_common.ids import PaymentId
from tipjar_common.utils.utils import get_now, get_logger
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.schemas.payment import PaymentResponse

logger = get_logger()

# Once the processor reports success the donor is told so, even if recording it locally fails.
# Telling them otherwise invites a second charge; support reconciles from the error log.
LENIENT_SUCCESS_ON_BOOKKEEPING_FAILURE = True

CONTACT_SUPPORT_NOTICE = "Your payment went through, but we could not record it. Please contact support and quote your payment reference."
MISMATCHED_INTENT_MESSAGE = "This payment does not belong to the donation being confirmed"

# Client secrets are reused while the donor stays on the form
PREPARED_INTENT_TTL_SECONDS = 30 * 60
MAX_PREPARED_INTENTS = 1000

type IntentKey = tuple[PaymentId, int]


class PaymentConfirmationService:
    """Singleton: holds the in-flight guard and the prepared-intent cache across requests."""

    def __init__(
        self,
        payment_dao: PaymentDAO,
        stripe_service: StripeService,
        bookkeeper: PaymentCompletionBookkeeper,
        config: ConfigService,
        *,
        ttl_seconds: float = PREPARED_INTENT_TTL_SECONDS,
        max_prepared: int = MAX_PREPARED_INTENTS,
    ) -> None:
        self.payment_dao = payment_dao
        self.stripe_service = stripe_service
        self.bookkeeper = bookkeeper
        self.config = config
        self.ttl_seconds = ttl_seconds
        self.max_prepared = max_prepared
        self._in_flight: dict[IntentKey, asyncio.Task[PaymentIntentResult]] = {}
        self._prepared: OrderedDict[IntentKey, tuple[PaymentIntentResult, float]] = OrderedDict()

    @property
    def prepared_count(self) -> int:
        return len(self._prepared)

    async def prepare_intent(self, db: AsyncSession, payment_id: PaymentId, *, amount: int, currency: str) -> PreparedIntent:
        """Create at most one payment intent per (payment, amount)."""
        min_amount = self.config.donations.min_amount
        if amount < min_amount:
            raise Errors.Donation.AMOUNT_TOO_LOW.create(details={"amount": amount, "min_amount": min_amount})

        payment = await self.payment_dao.get(db, payment_id)
        if payment is None:
            self.forget(payment_id)
            raise Errors.Donation.NOT_FOUND.create(details={"payment_id": str(payment_id)})
        if payment.status != PaymentStatus.PENDING:
            self.forget(payment_id)
            raise Errors.Generic.INVALID_INPUT.create(message="Payment is no longer pending", details={"status": payment.status})
        if amount != payment.amount or currency.upper() != payment.currency.upper():
            raise Errors.Generic.INVALID_INPUT.create(
                message="Amount does not match the donation",
                details={"amount": amount, "currency": currency, "expected_amount": payment.amount, "expected_currency": payment.currency},
            )

        key: IntentKey = (payment_id, amount)
        cached = self._cached(key)
        if cached is not None:
            return PreparedIntent(
                payment_id=payment_id,
                client_secret=cached.client_secret,
                payment_intent_id=cached.payment_intent_id,
                reused=True,
            )

        task = self._in_flight.get(key)
        reused = task is not None
        if task is None:
            task = asyncio.ensure_future(self.stripe_service.create_payment_intent(amount=amount, currency=currency, payment_id=payment_id))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))

        # A cancelled caller must not cancel the call other callers are waiting on
        result = await asyncio.shield(task)
        self._remember(key, result)
        return PreparedIntent(
            payment_id=payment_id,
            client_secret=result.client_secret,
            payment_intent_id=result.payment_intent_id,
            reused=reused,
        )

    def _cached(self, key: IntentKey) -> PaymentIntentResult | None:
        self._evict_expired()
        entry = self._prepared.get(key)
        if entry is None:
            return None
        self._prepared.move_to_end(key)
        return entry[0]

    def _remember(self, key: IntentKey, result: PaymentIntentResult) -> None:
        self._prepared[key] = (result, time.monotonic() + self.ttl_seconds)
        self._prepared.move_to_end(key)
        self._evict_expired()
        while len(self._prepared) > self.max_prepared:
            evicted, _ = self._prepared.popitem(last=False)
            logger.debug("Prepared intent evicted", payment_id=evicted[0], amount=evicted[1])

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for key in [k for k, (_, expires_at) in self._prepared.items() if expires_at <= now]:
            del self._prepared[key]

    def forget(self, payment_id: PaymentId) -> None:
        """Drop cached client secrets for a payment that can no longer be paid."""
        for key in [k for k in self._prepared if k[0] == payment_id]:
            del self._prepared[key]

    @staticmethod
    def _matches(intent: ProcessorPaymentIntent, payment: PaymentResponse) -> bool:
        return (
            intent.metadata.get("payment_id") == str(payment.id)
            and intent.amount == payment.amount
            and (intent.currency or "").upper() == payment.currency.upper()
        )

    async def confirm(self, db: AsyncSession, payment_id: PaymentId, *, processor_payment_id: str) -> ConfirmationResult:
        """Success callback after the browser confirmed the payment with the processor."""
        intent = await self.stripe_service.retrieve_payment_intent(processor_payment_id)
        if not intent.succeeded:
            raise Errors.Processor.CONFIRMATION_FAILED.create(
                message=intent.error_message or f"Payment status: {intent.status}",
                details={"status": intent.status, "processor_payment_id": processor_payment_id},
            )

        payment = await self.payment_dao.get(db, payment_id)
        if payment is None:
            raise Errors.Donation.NOT_FOUND.create(details={"payment_id": str(payment_id)})
        if not self._matches(intent, payment):
            logger.warning(
                "Processor payment does not match the donation",
                payment_id=payment_id,
                processor_payment_id=processor_payment_id,
                intent_payment_id=intent.metadata.get("payment_id"),
                intent_amount=intent.amount,
                intent_currency=intent.currency,
                amount=payment.amount,
                currency=payment.currency,
            )
            raise Errors.Processor.CONFIRMATION_FAILED.create(
                message=MISMATCHED_INTENT_MESSAGE,
                details={"payment_id": str(payment_id), "processor_payment_id": processor_payment_id},
            )

        try:
            result = await self.payment_dao.record_external_reference(
                db,
                payment_id,
                external_reference=processor_payment_id,
                completed_at=get_now(),
            )
            if result is None:
                raise Errors.Donation.NOT_FOUND.create(details={"payment_id": str(payment_id)})
            if result.newly_completed:
                await self.bookkeeper.on_completed(db, result.payment)
            await db.commit()
        except (SQLAlchemyError, AppException) as e:
            await db.rollback()
            if not LENIENT_SUCCESS_ON_BOOKKEEPING_FAILURE:
                raise
            logger.error(
                "Payment confirmed by processor but could not be recorded",
                payment_id=payment_id,
                processor_payment_id=processor_payment_id,
                error=str(e),
                exc_info=e,
            )
            return ConfirmationResult(payment_id=payment_id, succeeded=True, recorded=False, notice=CONTACT_SUPPORT_NOTICE)

        self.forget(payment_id)
        logger.info(
            "Payment confirmed",
            payment_id=payment_id,
            processor_payment_id=processor_payment_id,
            newly_completed=result.newly_completed,
        )
        return ConfirmationResult(payment_id=payment_id, succeeded=True, recorded=True)
