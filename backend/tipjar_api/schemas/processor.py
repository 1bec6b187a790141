"""Payment processor (Stripe) schemas: results of SDK calls, webhook events and the legacy /api surface."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from tipjar_common.utils.json_model import JsonModel


class StripeEventType(StrEnum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"


class StripePaymentStatus(StrEnum):
    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"


class PaymentIntentStatus(StrEnum):
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    CANCELED = "canceled"


class ProcessorStatus(BaseModel):
    account_id: str


class PaymentIntentResult(BaseModel):
    client_secret: str
    payment_intent_id: str


class CheckoutSessionResult(BaseModel):
    id: str
    url: str


class ProcessorPaymentIntent(BaseModel):
    id: str
    status: str
    amount: int | None = None
    currency: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentIntentStatus.SUCCEEDED


class ProcessorCheckoutSession(BaseModel):
    id: str
    status: str | None = None
    payment_status: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == StripePaymentStatus.PAID


# Webhook payloads


class CheckoutSessionMetadata(BaseModel):
    payment_id: str | None = None
    name: str | None = None


class CustomerDetails(BaseModel):
    email: str | None = None
    name: str | None = None


class CheckoutSessionObject(BaseModel):
    id: str
    amount_total: int | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_details: CustomerDetails | None = None
    metadata: CheckoutSessionMetadata = Field(default_factory=CheckoutSessionMetadata)

    @property
    def email(self) -> str | None:
        if self.customer_email:
            return self.customer_email
        return self.customer_details.email if self.customer_details else None


class StripeEventData(BaseModel):
    object: dict[str, Any] = Field(default_factory=dict)


class StripeEvent(BaseModel):
    id: str
    type: str
    data: StripeEventData = Field(default_factory=StripeEventData)


class WebhookReceived(JsonModel):
    received: bool = True


# Browser-facing /api surface. Fields are optional so that missing values get
# the {"error": "Missing required fields"} body the donation pages expect, not a 422.


class LegacyPaymentIntentRequest(JsonModel):
    amount: int | None = None
    currency: str | None = None
    payment_id: str | None = None


class LegacyPaymentIntentResponse(JsonModel):
    client_secret: str
    payment_intent_id: str


class LegacyCheckoutSessionRequest(JsonModel):
    payment_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    email: str | None = None
    name: str | None = None
    description: str | None = None


class LegacyPaymentInfoRequest(JsonModel):
    payment_id: str | None = None
    stripe_payment_id: str | None = None
    creator_id: str | None = None


class SessionStatusResponse(JsonModel):
    status: str
    payment_status: str | None = None
