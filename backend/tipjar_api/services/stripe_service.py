"""StripeService encapsulates all Stripe interactions.
Reads configuration from ConfigService and exposes liveness, payment intent, checkout session and webhook helpers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import stripe

from tipjar_api.schemas.processor import (
    CheckoutSessionResult,
    PaymentIntentResult,
    ProcessorCheckoutSession,
    ProcessorPaymentIntent,
    ProcessorStatus,
    StripeEvent,
)
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.core.config_service import ConfigService
from tipjar_common.ids import PaymentId
from tipjar_common.utils.msgspec import SerializationError, decode_json
from tipjar_common.utils.utils import get_logger

logger = get_logger()

DEFAULT_PRODUCT_NAME = "Support donation"
PAYMENT_METHOD_TYPES = ["card", "blik"]


class StripeService:
    def __init__(self, config: ConfigService) -> None:
        self.config = config
        self.webhook_secret = config.stripe.webhook_secret
        if config.stripe.secret_key:
            stripe.api_key = config.stripe.secret_key
        else:
            logger.warning("Stripe secret key is missing in configuration; processor calls will be refused")
        if config.stripe.api_base_url:
            stripe.api_base = config.stripe.api_base_url

    @property
    def is_configured(self) -> bool:
        return self.config.stripe.is_configured

    def _call(self, operation: str, fn: Callable[..., Any], **params: Any) -> Any:
        """Invoke a Stripe SDK function and translate SDK errors into processor errors."""
        if not self.is_configured:
            raise Errors.Processor.NOT_CONFIGURED.create()

        try:
            return fn(**params)
        except stripe.AuthenticationError as e:
            logger.exception("Stripe authentication error", operation=operation)
            raise Errors.Processor.AUTHENTICATION_FAILED.create(cause=e) from e
        except stripe.InvalidRequestError as e:
            logger.exception("Stripe invalid request", operation=operation)
            raise Errors.Processor.INVALID_REQUEST.create(message=e.user_message or str(e), cause=e) from e
        except stripe.RateLimitError as e:
            logger.exception("Stripe rate limit exceeded", operation=operation)
            raise Errors.Processor.RATE_LIMITED.create(cause=e) from e
        except stripe.APIConnectionError as e:
            logger.exception("Stripe API connection error", operation=operation)
            raise Errors.Processor.CONNECTION_FAILED.create(cause=e) from e
        except stripe.APIError as e:
            logger.exception("Stripe API error", operation=operation)
            raise Errors.Processor.API_ERROR.create(cause=e) from e
        except stripe.StripeError as e:
            # Fallback for any other Stripe-specific errors
            logger.exception("Generic Stripe error", operation=operation)
            raise Errors.Processor.API_ERROR.create(message=e.user_message or str(e), cause=e) from e

    async def check_connection(self) -> ProcessorStatus:
        """Liveness probe: retrieve the account the secret key belongs to."""
        try:
            account = self._call("check_connection", stripe.Account.retrieve)
        except AppException as e:
            raise Errors.Processor.UNAVAILABLE.create(details={"reason": e.details.code}) from e
        return ProcessorStatus(account_id=account.id)

    async def create_payment_intent(self, *, amount: int, currency: str, payment_id: PaymentId | None = None) -> PaymentIntentResult:
        metadata = {"payment_id": str(payment_id)} if payment_id else {}
        intent = self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            payment_method_types=PAYMENT_METHOD_TYPES,
            metadata=metadata,
        )
        logger.info("Created Stripe payment intent", payment_intent_id=intent.id, payment_id=payment_id, amount=amount)
        return PaymentIntentResult(client_secret=intent.client_secret, payment_intent_id=intent.id)

    async def create_checkout_session(
        self,
        *,
        payment_id: PaymentId,
        amount: int,
        currency: str,
        origin: str,
        email: str | None = None,
        name: str | None = None,
        description: str | None = None,
    ) -> CheckoutSessionResult:
        origin = origin.rstrip("/")
        metadata = {"payment_id": str(payment_id)}
        if name:
            metadata["name"] = name

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": PAYMENT_METHOD_TYPES,
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": description or DEFAULT_PRODUCT_NAME},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{origin}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{origin}/payment/cancel",
            "metadata": metadata,
        }
        if email:
            params["customer_email"] = email

        logger.info("Creating Stripe Checkout Session", payment_id=payment_id, amount=amount, currency=currency)
        session = self._call("create_checkout_session", stripe.checkout.Session.create, **params)
        return CheckoutSessionResult(id=session.id, url=session.url)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> ProcessorPaymentIntent:
        intent = self._call("retrieve_payment_intent", stripe.PaymentIntent.retrieve, id=payment_intent_id)
        last_error = getattr(intent, "last_payment_error", None)
        return ProcessorPaymentIntent(
            id=intent.id,
            status=str(intent.status),
            amount=getattr(intent, "amount", None),
            currency=getattr(intent, "currency", None),
            metadata={str(k): str(v) for k, v in (getattr(intent, "metadata", None) or {}).items()},
            error_message=getattr(last_error, "message", None) if last_error else None,
        )

    async def retrieve_checkout_session(self, session_id: str) -> ProcessorCheckoutSession:
        session = self._call("retrieve_checkout_session", stripe.checkout.Session.retrieve, id=session_id)
        return ProcessorCheckoutSession(
            id=session.id,
            status=getattr(session, "status", None),
            payment_status=getattr(session, "payment_status", None),
        )

    def construct_event(self, payload: bytes, signature: str | None) -> StripeEvent:
        """Verify the webhook signature and parse the event body."""
        if not signature or not self.webhook_secret:
            raise Errors.Webhook.MISSING_SIGNATURE.create(
                message="Webhook signature verification failed",
                details={"has_signature": bool(signature), "has_secret": bool(self.webhook_secret)},
            )

        try:
            stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning("Stripe webhook signature verification failed", error=str(e))
            raise Errors.Webhook.INVALID_SIGNATURE.create(message="Webhook signature verification failed", cause=e) from e

        try:
            return StripeEvent.model_validate(decode_json(payload))
        except (SerializationError, ValueError) as e:
            raise Errors.Webhook.INVALID_SIGNATURE.create(message="Webhook payload could not be parsed", cause=e) from e
