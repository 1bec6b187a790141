"""Onboarding flow schemas."""

from enum import StrEnum

from pydantic import Field

from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import AccountType


class OnboardingStep(StrEnum):
    ACCOUNT_TYPE = "account_type"
    PERSONAL_DATA = "personal_data"
    PHONE_VERIFICATION = "phone_verification"
    ICON_SELECTION = "icon_selection"
    BANK_ACCOUNT = "bank_account"
    COMPLETED = "completed"


class OnboardingState(JsonModel):
    step: OnboardingStep
    progress: int
    previous_step: OnboardingStep | None = None
    next_step: OnboardingStep | None = None
    completed: bool = False


class AccountTypeRequest(JsonModel):
    account_type: AccountType


class PhoneCodeSent(JsonModel):
    masked_phone: str
    resend_after_seconds: int


class PhoneVerifyRequest(JsonModel):
    code: str = Field(..., min_length=1, max_length=12)


class IconSelectionRequest(JsonModel):
    small_icon: str
    medium_icon: str
    large_icon: str
    small_amount: int = 50
    medium_amount: int = 100
    large_amount: int = 300
