"""Creator onboarding.

The current step is never stored: it is derived from the rows each step writes, so a creator who leaves
halfway resumes at the first step whose data is missing. Every submission persists immediately.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.onboarding import IconSelectionRequest, OnboardingState, OnboardingStep, PhoneCodeSent
from tipjar_api.services.payout_service import PayoutService
from tipjar_api.services.phone_verifier import PhoneVerifier
from tipjar_api.services.profile_service import validate_tiers
from tipjar_common.core.app_error import Errors
from tipjar_common.ids import UserId
from tipjar_common.utils.utils import get_now, get_logger
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import PersonalDataDAO, VerificationDAO
from tipjar_db.models.enums import AccountType
from tipjar_db.schemas.payout import BankAccountData
from tipjar_db.schemas.profile import ProfileResponse
from tipjar_db.schemas.verification import PersonalDataFields

logger = get_logger()

_POSTAL_CODE_PATTERN = re.compile(r"^\d{2}-\d{3}$")
_PHONE_PATTERN = re.compile(r"(48)?\d{9}")
_TEN_DIGITS_PATTERN = re.compile(r"^\d{10}$")


class OnboardingFlow:
    STEP_ORDER: ClassVar[tuple[OnboardingStep, ...]] = (
        OnboardingStep.ACCOUNT_TYPE,
        OnboardingStep.PERSONAL_DATA,
        OnboardingStep.PHONE_VERIFICATION,
        OnboardingStep.ICON_SELECTION,
        OnboardingStep.BANK_ACCOUNT,
        OnboardingStep.COMPLETED,
    )
    PROGRESS: ClassVar[dict[OnboardingStep, int]] = {
        OnboardingStep.ACCOUNT_TYPE: 20,
        OnboardingStep.PERSONAL_DATA: 40,
        OnboardingStep.PHONE_VERIFICATION: 60,
        OnboardingStep.ICON_SELECTION: 80,
        OnboardingStep.BANK_ACCOUNT: 100,
        OnboardingStep.COMPLETED: 100,
    }

    @classmethod
    def index(cls, step: OnboardingStep) -> int:
        return cls.STEP_ORDER.index(step)

    @classmethod
    def next(cls, step: OnboardingStep) -> OnboardingStep | None:
        position = cls.index(step)
        return cls.STEP_ORDER[position + 1] if position + 1 < len(cls.STEP_ORDER) else None

    @classmethod
    def previous(cls, step: OnboardingStep) -> OnboardingStep | None:
        """One step back. There is no going back from the first step or out of ``completed``."""
        position = cls.index(step)
        if position == 0 or step == OnboardingStep.COMPLETED:
            return None
        return cls.STEP_ORDER[position - 1]

    @classmethod
    def progress(cls, step: OnboardingStep) -> int:
        return cls.PROGRESS[step]

    @classmethod
    def state(cls, step: OnboardingStep) -> OnboardingState:
        return OnboardingState(
            step=step,
            progress=cls.progress(step),
            previous_step=cls.previous(step),
            next_step=cls.next(step),
            completed=step == OnboardingStep.COMPLETED,
        )


def _clean_number(value: str) -> str:
    return re.sub(r"[ -]", "", value)


def is_valid_polish_phone(phone_number: str) -> bool:
    return _PHONE_PATTERN.fullmatch(re.sub(r"[ +()-]", "", phone_number)) is not None


def validate_personal_data(account_type: AccountType, data: PersonalDataFields) -> PersonalDataFields:
    """Check the fields the account type requires. Returns the data with NIP/KRS cleaned."""
    errors: dict[str, str] = {}

    for field in ("address", "city", "country"):
        if not (getattr(data, field) or "").strip():
            errors[field] = "Required"

    if not data.postal_code:
        errors["postal_code"] = "Required"
    elif not _POSTAL_CODE_PATTERN.match(data.postal_code):
        errors["postal_code"] = "Postal code must have the format NN-NNN"

    if not data.phone_number:
        errors["phone_number"] = "Required"
    elif not is_valid_polish_phone(data.phone_number):
        errors["phone_number"] = "Invalid phone number, e.g. 123456789 or +48 123 456 789"

    updates: dict[str, Any] = {}
    if account_type in (AccountType.INDIVIDUAL, AccountType.CREATOR):
        for field in ("first_name", "last_name", "professional_category"):
            if not getattr(data, field):
                errors[field] = "Required"

    if account_type in (AccountType.BUSINESS, AccountType.NONPROFIT):
        if not data.organization_name:
            errors["organization_name"] = "Required"
        if not data.tax_id:
            errors["tax_id"] = "Required"
        elif not _TEN_DIGITS_PATTERN.match(_clean_number(data.tax_id)):
            errors["tax_id"] = "NIP must have 10 digits"
        else:
            updates["tax_id"] = _clean_number(data.tax_id)

    if account_type == AccountType.NONPROFIT:
        if not data.nonprofit_id:
            errors["nonprofit_id"] = "Required"
        elif not _TEN_DIGITS_PATTERN.match(_clean_number(data.nonprofit_id)):
            errors["nonprofit_id"] = "KRS must have 10 digits"
        else:
            updates["nonprofit_id"] = _clean_number(data.nonprofit_id)
        if not data.mission_statement:
            errors["mission_statement"] = "Required"

    if errors:
        raise Errors.Onboarding.INVALID_PERSONAL_DATA.create(details={"account_type": account_type, "fields": errors})
    return data.model_copy(update=updates)


class OnboardingService:
    def __init__(
        self,
        profile_dao: ProfileDAO,
        personal_data_dao: PersonalDataDAO,
        verification_dao: VerificationDAO,
        payout_service: PayoutService,
        phone_verifier: PhoneVerifier,
    ) -> None:
        self.profile_dao = profile_dao
        self.personal_data_dao = personal_data_dao
        self.verification_dao = verification_dao
        self.payout_service = payout_service
        self.phone_verifier = phone_verifier

    async def resume_step(self, db: AsyncSession, profile: ProfileResponse) -> OnboardingStep:
        """First step whose data is missing, checked in flow order."""
        if profile.account_type is None:
            return OnboardingStep.ACCOUNT_TYPE
        if await self.personal_data_dao.get(db, profile.id) is None:
            return OnboardingStep.PERSONAL_DATA
        verification = await self.verification_dao.get(db, profile.id)
        if verification is None or not verification.phone_verified:
            return OnboardingStep.PHONE_VERIFICATION
        if not profile.icons_selected:
            return OnboardingStep.ICON_SELECTION
        if profile.onboarding_completed_at is None:
            return OnboardingStep.BANK_ACCOUNT
        return OnboardingStep.COMPLETED

    async def state(self, db: AsyncSession, profile: ProfileResponse) -> OnboardingState:
        return OnboardingFlow.state(await self.resume_step(db, profile))

    async def require_completed(self, db: AsyncSession, profile: ProfileResponse) -> None:
        step = await self.resume_step(db, profile)
        if step != OnboardingStep.COMPLETED:
            raise Errors.Onboarding.INCOMPLETE.create(details={"step": step})

    async def step_data(self, db: AsyncSession, profile: ProfileResponse, step: OnboardingStep) -> dict[str, Any]:
        """What the creator already saved for a step, for prefilling the form."""
        match step:
            case OnboardingStep.ACCOUNT_TYPE:
                return {"accountType": profile.account_type}
            case OnboardingStep.PERSONAL_DATA:
                data = await self.personal_data_dao.get(db, profile.id)
                return data.to_dict(mode="json") if data else {}
            case OnboardingStep.PHONE_VERIFICATION:
                verification = await self.verification_dao.get(db, profile.id)
                return {"phoneVerified": bool(verification and verification.phone_verified)}
            case OnboardingStep.ICON_SELECTION:
                return {
                    "smallIcon": profile.small_icon,
                    "mediumIcon": profile.medium_icon,
                    "largeIcon": profile.large_icon,
                    "smallAmount": profile.small_amount,
                    "mediumAmount": profile.medium_amount,
                    "largeAmount": profile.large_amount,
                }
            case OnboardingStep.BANK_ACCOUNT:
                account = await self.payout_service.bank_account_dao.get_current(db, profile.id)
                return account.to_dict(mode="json") if account else {}
            case OnboardingStep.COMPLETED:
                return {"completedAt": profile.onboarding_completed_at}

    async def _check_reachable(self, db: AsyncSession, profile: ProfileResponse, step: OnboardingStep) -> None:
        current = await self.resume_step(db, profile)
        if OnboardingFlow.index(step) > OnboardingFlow.index(current):
            raise Errors.Onboarding.STEP_OUT_OF_ORDER.create(details={"requested_step": step, "current_step": current})

    async def _advanced(self, db: AsyncSession, user_id: UserId) -> OnboardingState:
        profile = await self.profile_dao.get(db, user_id)
        if profile is None:
            raise Errors.Profile.NOT_FOUND.create(details={"user_id": str(user_id)})
        return await self.state(db, profile)

    async def submit_account_type(self, db: AsyncSession, profile: ProfileResponse, account_type: AccountType) -> OnboardingState:
        await self.profile_dao.update(db, profile.id, changes={"account_type": account_type})
        logger.info("Onboarding account type saved", user_id=profile.id, account_type=account_type)
        return await self._advanced(db, profile.id)

    async def submit_personal_data(self, db: AsyncSession, profile: ProfileResponse, data: PersonalDataFields) -> OnboardingState:
        await self._check_reachable(db, profile, OnboardingStep.PERSONAL_DATA)
        if profile.account_type is None:
            raise Errors.Onboarding.STEP_OUT_OF_ORDER.create(details={"requested_step": OnboardingStep.PERSONAL_DATA})
        data = validate_personal_data(profile.account_type, data)
        await self.personal_data_dao.upsert(db, profile.id, data=data)
        logger.info("Onboarding personal data saved", user_id=profile.id)
        return await self._advanced(db, profile.id)

    async def _phone_number(self, db: AsyncSession, user_id: UserId) -> str:
        data = await self.personal_data_dao.get(db, user_id)
        if data is None or not data.phone_number:
            raise Errors.Verification.PHONE_MISSING.create()
        return data.phone_number

    async def send_phone_code(self, db: AsyncSession, profile: ProfileResponse) -> PhoneCodeSent:
        await self._check_reachable(db, profile, OnboardingStep.PHONE_VERIFICATION)
        return await self.phone_verifier.send_code(await self._phone_number(db, profile.id))

    async def verify_phone(self, db: AsyncSession, profile: ProfileResponse, code: str) -> OnboardingState:
        await self._check_reachable(db, profile, OnboardingStep.PHONE_VERIFICATION)
        phone_number = await self._phone_number(db, profile.id)
        if not await self.phone_verifier.verify_code(phone_number, code):
            logger.info("Phone verification code rejected", user_id=profile.id)
            raise Errors.Verification.INVALID_CODE.create()
        await self.verification_dao.mark_phone_verified(db, profile.id, verified_at=get_now())
        logger.info("Phone verified", user_id=profile.id)
        return await self._advanced(db, profile.id)

    async def submit_icons(self, db: AsyncSession, profile: ProfileResponse, selection: IconSelectionRequest) -> OnboardingState:
        await self._check_reachable(db, profile, OnboardingStep.ICON_SELECTION)
        validate_tiers(selection.small_amount, selection.medium_amount, selection.large_amount)
        await self.profile_dao.update(db, profile.id, changes=selection.model_dump())
        logger.info("Onboarding icons saved", user_id=profile.id)
        return await self._advanced(db, profile.id)

    async def submit_bank_account(self, db: AsyncSession, profile: ProfileResponse, data: BankAccountData) -> OnboardingState:
        await self._check_reachable(db, profile, OnboardingStep.BANK_ACCOUNT)
        await self.payout_service.save_bank_account(db, profile.id, data)
        return await self._complete(db, profile.id)

    async def skip_bank_account(self, db: AsyncSession, profile: ProfileResponse) -> OnboardingState:
        await self._check_reachable(db, profile, OnboardingStep.BANK_ACCOUNT)
        return await self._complete(db, profile.id)

    async def _complete(self, db: AsyncSession, user_id: UserId) -> OnboardingState:
        profile = await self.profile_dao.get(db, user_id)
        if profile is not None and profile.onboarding_completed_at is None:
            await self.profile_dao.update(db, user_id, changes={"onboarding_completed_at": get_now()})
            logger.info("Onboarding completed", user_id=user_id)
        return await self._advanced(db, user_id)
