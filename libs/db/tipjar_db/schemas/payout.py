"""Bank account and payout schemas."""

from datetime import datetime

from pydantic import ConfigDict

from tipjar_common.ids import BankAccountId, PayoutId, UserId
from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import PayoutStatus


class BankAccountData(JsonModel):
    account_number: str
    bank_name: str
    swift_code: str | None = None


class BankAccountResponse(BankAccountData):
    id: BankAccountId
    user_id: UserId
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PayoutResponse(JsonModel):
    id: PayoutId
    user_id: UserId
    bank_account_id: BankAccountId
    amount: int
    status: PayoutStatus
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PayoutWithBankAccount(PayoutResponse):
    account_number: str | None = None
    bank_name: str | None = None


class PayoutTotals(JsonModel):
    completed: int = 0
    pending: int = 0
