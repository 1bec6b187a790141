"""Payment (donation) schemas."""

from datetime import datetime

from pydantic import ConfigDict

from tipjar_common.ids import PaymentId, UserId
from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import PaymentStatus


class PaymentCreate(JsonModel):
    creator_id: UserId
    amount: int
    currency: str = "PLN"
    message: str | None = None
    payer_name: str | None = None
    payer_email: str | None = None
    payment_type: str = "stripe"


class CheckoutCompletion(JsonModel):
    """Fields captured from a completed hosted checkout session."""

    stripe_session_id: str
    payment_amount: int | None = None
    payment_currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None


class PaymentResponse(JsonModel):
    id: PaymentId
    creator_id: UserId
    amount: int
    currency: str
    status: PaymentStatus
    payer_name: str | None = None
    payer_email: str | None = None
    message: str | None = None
    payment_type: str
    external_reference: str | None = None
    stripe_session_id: str | None = None
    payment_amount: int | None = None
    payment_currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CompletionResult(JsonModel):
    """Outcome of moving a payment into ``completed``. ``newly_completed`` is False on redelivery."""

    payment: PaymentResponse
    newly_completed: bool


ANONYMOUS_KEY_PREFIX = "anonymous-"


def donor_key(payer_email: str | None, payer_name: str | None, payment_id: object) -> str:
    """Donor identity: email, else name, else a per-payment anonymous key. Blank strings count as missing."""
    return payer_email or payer_name or f"{ANONYMOUS_KEY_PREFIX}{payment_id}"


class DonorTotal(JsonModel):
    donor_key: str
    payer_name: str | None = None
    payer_email: str | None = None
    total_amount: int
    donation_count: int

    @property
    def is_anonymous(self) -> bool:
        return self.donor_key.startswith(ANONYMOUS_KEY_PREFIX)
