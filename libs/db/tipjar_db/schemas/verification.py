"""Verification and personal data schemas."""

from datetime import datetime

from pydantic import ConfigDict

from tipjar_common.ids import UserId
from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import KycStatus


class VerificationResponse(JsonModel):
    user_id: UserId
    kyc_status: KycStatus = KycStatus.NOT_STARTED
    kyc_reference: str | None = None
    kyc_completed_at: datetime | None = None
    phone_verified: bool = False
    phone_verified_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PersonalDataFields(JsonModel):
    first_name: str | None = None
    last_name: str | None = None
    address: str
    city: str
    postal_code: str
    country: str
    phone_number: str
    organization_name: str | None = None
    tax_id: str | None = None
    nonprofit_id: str | None = None
    mission_statement: str | None = None
    professional_category: str | None = None
    portfolio_url: str | None = None


class PersonalDataResponse(PersonalDataFields):
    user_id: UserId
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
