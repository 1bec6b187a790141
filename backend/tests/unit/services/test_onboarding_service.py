"""Onboarding tests: step ordering, resume derivation and personal data rules."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.onboarding import IconSelectionRequest, OnboardingStep
from tipjar_api.services.onboarding_service import OnboardingFlow, OnboardingService, is_valid_polish_phone, validate_personal_data
from tipjar_api.services.payout_service import PayoutService
from tipjar_api.services.phone_verifier import StaticCodePhoneVerifier
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.core.config_service import DonationSection
from tipjar_db.crud.payout import BankAccountDAO, PayoutDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import PersonalDataDAO, VerificationDAO
from tipjar_db.models.enums import AccountType
from tipjar_db.schemas.payout import BankAccountData
from tipjar_db.schemas.profile import ProfileResponse
from tipjar_db.schemas.verification import PersonalDataFields

ADDRESS = {"address": "ul. Długa 1", "city": "Kraków", "postal_code": "30-001", "country": "Polska", "phone_number": "+48 600 100 200"}


def _individual() -> PersonalDataFields:
    return PersonalDataFields(first_name="Magda", last_name="Nowak", professional_category="Ilustracja", **ADDRESS)


def _build_service() -> OnboardingService:
    config = MagicMock()
    config.donations = DonationSection()
    payout_service = PayoutService(PayoutDAO(), BankAccountDAO(), VerificationDAO(), config)
    return OnboardingService(ProfileDAO(), PersonalDataDAO(), VerificationDAO(), payout_service, StaticCodePhoneVerifier("1234"))


async def _reload(db: AsyncSession, profile: ProfileResponse) -> ProfileResponse:
    fresh = await ProfileDAO().get(db, profile.id)
    assert fresh is not None
    return fresh


class TestOnboardingFlow:
    def test_progress_per_step(self) -> None:
        assert [OnboardingFlow.progress(step) for step in OnboardingFlow.STEP_ORDER] == [20, 40, 60, 80, 100, 100]

    def test_navigation(self) -> None:
        assert OnboardingFlow.previous(OnboardingStep.ACCOUNT_TYPE) is None
        assert OnboardingFlow.previous(OnboardingStep.ICON_SELECTION) == OnboardingStep.PHONE_VERIFICATION
        assert OnboardingFlow.previous(OnboardingStep.COMPLETED) is None
        assert OnboardingFlow.next(OnboardingStep.BANK_ACCOUNT) == OnboardingStep.COMPLETED
        assert OnboardingFlow.next(OnboardingStep.COMPLETED) is None

    def test_state(self) -> None:
        state = OnboardingFlow.state(OnboardingStep.PERSONAL_DATA)

        assert state.progress == 40
        assert state.previous_step == OnboardingStep.ACCOUNT_TYPE
        assert state.next_step == OnboardingStep.PHONE_VERIFICATION
        assert state.completed is False


class TestValidatePersonalData:
    @pytest.mark.parametrize("phone", ["600100200", "+48 600 100 200", "(48) 600-100-200", "48600100200"])
    def test_valid_phone_numbers(self, phone: str) -> None:
        assert is_valid_polish_phone(phone)

    @pytest.mark.parametrize("phone", ["12345", "+49 600 100 200 1", "phone"])
    def test_invalid_phone_numbers(self, phone: str) -> None:
        assert not is_valid_polish_phone(phone)

    def test_individual_requires_name_and_category(self) -> None:
        data = PersonalDataFields(**ADDRESS)

        with pytest.raises(AppException) as exc_info:
            validate_personal_data(AccountType.INDIVIDUAL, data)

        assert Errors.Onboarding.INVALID_PERSONAL_DATA.is_(exc_info.value)
        assert set(exc_info.value.details.details["fields"]) == {"first_name", "last_name", "professional_category"}

    def test_business_tax_id_is_cleaned(self) -> None:
        data = PersonalDataFields(organization_name="Studio Magda sp. z o.o.", tax_id="123-456-78-90", **ADDRESS)

        assert validate_personal_data(AccountType.BUSINESS, data).tax_id == "1234567890"

    def test_nonprofit_requires_krs_and_mission(self) -> None:
        data = PersonalDataFields(organization_name="Fundacja", tax_id="1234567890", nonprofit_id="12345", **ADDRESS)

        with pytest.raises(AppException) as exc_info:
            validate_personal_data(AccountType.NONPROFIT, data)

        fields = exc_info.value.details.details["fields"]
        assert set(fields) == {"nonprofit_id", "mission_statement"}

    def test_postal_code_format(self) -> None:
        data = _individual().model_copy(update={"postal_code": "30001"})

        with pytest.raises(AppException) as exc_info:
            validate_personal_data(AccountType.CREATOR, data)

        assert set(exc_info.value.details.details["fields"]) == {"postal_code"}


class TestOnboardingService:
    """The current step is derived from what each step stored."""

    async def test_full_flow(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        assert (await service.state(db, creator)).step == OnboardingStep.ACCOUNT_TYPE

        state = await service.submit_account_type(db, creator, AccountType.INDIVIDUAL)
        assert state.step == OnboardingStep.PERSONAL_DATA

        state = await service.submit_personal_data(db, await _reload(db, creator), _individual())
        assert state.step == OnboardingStep.PHONE_VERIFICATION

        sent = await service.send_phone_code(db, await _reload(db, creator))
        assert sent.masked_phone.endswith("0200")

        with pytest.raises(AppException) as exc_info:
            await service.verify_phone(db, await _reload(db, creator), "0000")
        assert Errors.Verification.INVALID_CODE.is_(exc_info.value)

        state = await service.verify_phone(db, await _reload(db, creator), "1234")
        assert state.step == OnboardingStep.ICON_SELECTION

        selection = IconSelectionRequest(small_icon="coffee", medium_icon="pizza", large_icon="gift", small_amount=10, medium_amount=20, large_amount=50)
        state = await service.submit_icons(db, await _reload(db, creator), selection)
        assert state.step == OnboardingStep.BANK_ACCOUNT
        assert state.progress == 100

        state = await service.submit_bank_account(
            db, await _reload(db, creator), BankAccountData(account_number="PL61109010140000071219812874", bank_name="mBank")
        )
        assert state.step == OnboardingStep.COMPLETED
        assert state.completed is True

        profile = await _reload(db, creator)
        assert profile.onboarding_completed_at is not None
        assert profile.small_amount == 10
        await service.require_completed(db, profile)

    async def test_resumes_at_first_missing_step(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        await service.submit_account_type(db, creator, AccountType.INDIVIDUAL)
        await service.submit_personal_data(db, await _reload(db, creator), _individual())

        state = await _build_service().state(db, await _reload(db, creator))

        assert state.step == OnboardingStep.PHONE_VERIFICATION
        assert state.previous_step == OnboardingStep.PERSONAL_DATA

    async def test_skipping_ahead_is_refused(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        await service.submit_account_type(db, creator, AccountType.INDIVIDUAL)
        selection = IconSelectionRequest(small_icon="coffee", medium_icon="pizza", large_icon="gift")

        with pytest.raises(AppException) as exc_info:
            await service.submit_icons(db, await _reload(db, creator), selection)

        assert Errors.Onboarding.STEP_OUT_OF_ORDER.is_(exc_info.value)
        assert exc_info.value.http_status == 409

    async def test_personal_data_before_account_type_is_refused(self, db: AsyncSession, creator: ProfileResponse) -> None:
        with pytest.raises(AppException) as exc_info:
            await _build_service().submit_personal_data(db, creator, _individual())

        assert Errors.Onboarding.STEP_OUT_OF_ORDER.is_(exc_info.value)

    async def test_incomplete_onboarding_blocks_dashboard(self, db: AsyncSession, creator: ProfileResponse) -> None:
        with pytest.raises(AppException) as exc_info:
            await _build_service().require_completed(db, creator)

        assert Errors.Onboarding.INCOMPLETE.is_(exc_info.value)
        assert exc_info.value.details.details == {"step": OnboardingStep.ACCOUNT_TYPE}

    async def test_invalid_tiers_are_refused(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        await service.submit_account_type(db, creator, AccountType.INDIVIDUAL)
        await service.submit_personal_data(db, await _reload(db, creator), _individual())
        await service.verify_phone(db, await _reload(db, creator), "1234")
        selection = IconSelectionRequest(small_icon="coffee", medium_icon="pizza", large_icon="gift", small_amount=50, medium_amount=50, large_amount=300)

        with pytest.raises(AppException) as exc_info:
            await service.submit_icons(db, await _reload(db, creator), selection)

        assert Errors.Profile.INVALID_TIERS.is_(exc_info.value)

    async def test_skipping_bank_account_completes_once(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        await service.submit_account_type(db, creator, AccountType.CREATOR)
        await service.submit_personal_data(db, await _reload(db, creator), _individual())
        await service.verify_phone(db, await _reload(db, creator), "1234")
        await service.submit_icons(db, await _reload(db, creator), IconSelectionRequest(small_icon="a", medium_icon="b", large_icon="c"))

        state = await service.skip_bank_account(db, await _reload(db, creator))
        completed_at = (await _reload(db, creator)).onboarding_completed_at
        await service.skip_bank_account(db, await _reload(db, creator))

        assert state.step == OnboardingStep.COMPLETED
        assert (await _reload(db, creator)).onboarding_completed_at == completed_at

    async def test_step_data_prefills_saved_values(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = _build_service()
        await service.submit_account_type(db, creator, AccountType.INDIVIDUAL)
        await service.submit_personal_data(db, await _reload(db, creator), _individual())

        data = await service.step_data(db, await _reload(db, creator), OnboardingStep.PERSONAL_DATA)

        assert data["firstName"] == "Magda"
        assert data["postalCode"] == "30-001"
