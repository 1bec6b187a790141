"""Donation intake and payment confirmation schemas."""

from pydantic import Field

from tipjar_common.ids import PaymentId
from tipjar_common.utils.json_model import JsonModel


class DonationCreateRequest(JsonModel):
    amount: int = Field(..., description="Amount in minor units (grosz)")
    message: str | None = Field(default=None, max_length=2000)
    payer_name: str | None = Field(default=None, max_length=255)
    payer_email: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=255)


class DonationCreated(JsonModel):
    payment_id: PaymentId
    checkout_session_id: str
    redirect_url: str


class PrepareIntentRequest(JsonModel):
    amount: int = Field(..., description="Amount in minor units (grosz)")
    currency: str = "PLN"


class PreparedIntent(JsonModel):
    payment_id: PaymentId
    client_secret: str
    payment_intent_id: str
    reused: bool = False


class ConfirmPaymentRequest(JsonModel):
    processor_payment_id: str


class ConfirmationResult(JsonModel):
    payment_id: PaymentId
    succeeded: bool
    recorded: bool
    notice: str | None = None
