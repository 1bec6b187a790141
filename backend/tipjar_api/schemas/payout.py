"""Payout request and balance schemas."""

from pydantic import Field

from tipjar_common.ids import BankAccountId
from tipjar_common.utils.json_model import JsonModel


class PayoutRequest(JsonModel):
    amount: str = Field(..., description="Amount in PLN major units, e.g. '10.50' or '10,50'")
    bank_account_id: BankAccountId | None = None


class AvailableBalance(JsonModel):
    available_balance: int
    total_donations: int
    cached_balance: int
    completed_payouts: int
    pending_payouts: int
    min_payout_amount: int
    can_request_payout: bool
