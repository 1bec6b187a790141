"""ProfileDAO tests: lookups, protected fields and cached aggregates."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import BankAccountId, UserId
from tipjar_common.utils.utils import get_now
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.models.enums import PayoutStatus
from tipjar_db.models.payout import BankAccount, Payout
from tipjar_db.schemas.payment import PaymentCreate
from tipjar_db.schemas.profile import DonorVisibilitySettings, ProfileResponse

profile_dao = ProfileDAO()
payment_dao = PaymentDAO()


async def test_create_normalizes_username(db: AsyncSession) -> None:
    profile = await profile_dao.create(db, user_id=UserId(uuid.uuid4()), username="MagdaArt")

    assert profile.username == "magdaart"
    assert profile.display_name == "MagdaArt"
    assert profile.total_donations == 0
    assert profile.social_links == {}


async def test_lookup_by_username_ignores_case(db: AsyncSession, creator: ProfileResponse) -> None:
    found = await profile_dao.get_by_username(db, "  MAGDA ")

    assert found is not None
    assert found.id == creator.id
    assert await profile_dao.get_by_username(db, "nobody") is None


async def test_username_availability(db: AsyncSession, creator: ProfileResponse) -> None:
    assert await profile_dao.is_username_available(db, "Magda") is False
    assert await profile_dao.is_username_available(db, "someone-else") is True


async def test_update_skips_protected_fields(db: AsyncSession, creator: ProfileResponse) -> None:
    updated = await profile_dao.update(
        db,
        creator.id,
        changes={"bio": "Ilustracje", "username": "hacked", "total_donations": 10**6, "available_balance": 10**6},
    )

    assert updated is not None
    assert updated.bio == "Ilustracje"
    assert updated.username == "magda"
    assert updated.total_donations == 0
    assert updated.available_balance == 0


async def test_update_unknown_profile_returns_none(db: AsyncSession) -> None:
    assert await profile_dao.update(db, UserId(uuid.uuid4()), changes={"bio": "x"}) is None


class TestRefreshAggregates:
    """Cached totals are recomputed from payment and payout rows."""

    async def test_only_completed_payments_count(self, db: AsyncSession, creator: ProfileResponse) -> None:
        done = await payment_dao.create(db, obj_in=PaymentCreate(creator_id=creator.id, amount=5000))
        await payment_dao.create(db, obj_in=PaymentCreate(creator_id=creator.id, amount=7000))
        await payment_dao.record_external_reference(db, done.id, external_reference="pi_1", completed_at=get_now())

        profile = await profile_dao.refresh_aggregates(db, creator.id)

        assert profile is not None
        assert profile.total_donations == 5000
        assert profile.available_balance == 5000

    async def test_completed_payouts_reduce_balance(self, db: AsyncSession, creator: ProfileResponse) -> None:
        done = await payment_dao.create(db, obj_in=PaymentCreate(creator_id=creator.id, amount=5000))
        await payment_dao.record_external_reference(db, done.id, external_reference="pi_1", completed_at=get_now())
        account_id = BankAccountId(uuid.uuid4())
        db.add(BankAccount(id=account_id, user_id=creator.id, account_number="PL" + "1" * 26, bank_name="mBank"))
        db.add(Payout(user_id=creator.id, bank_account_id=account_id, amount=2000, status=PayoutStatus.COMPLETED))
        db.add(Payout(user_id=creator.id, bank_account_id=account_id, amount=9000, status=PayoutStatus.REJECTED))
        await db.flush()

        profile = await profile_dao.refresh_aggregates(db, creator.id)

        assert profile is not None
        assert profile.total_donations == 5000
        assert profile.available_balance == 3000

    async def test_unknown_profile(self, db: AsyncSession) -> None:
        assert await profile_dao.refresh_aggregates(db, UserId(uuid.uuid4())) is None


class TestDonorVisibility:
    async def test_defaults_when_never_saved(self, db: AsyncSession, creator: ProfileResponse) -> None:
        settings = await profile_dao.get_donor_visibility(db, creator.id)

        assert settings == DonorVisibilitySettings(show_top_donors=True, top_donors_count=5, hide_anonymous=False)

    async def test_save_then_overwrite(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await profile_dao.save_donor_visibility(db, creator.id, settings=DonorVisibilitySettings(top_donors_count=10))
        saved = await profile_dao.save_donor_visibility(
            db, creator.id, settings=DonorVisibilitySettings(show_top_donors=False, top_donors_count=3, hide_anonymous=True)
        )

        assert saved.show_top_donors is False
        assert (await profile_dao.get_donor_visibility(db, creator.id)).top_donors_count == 3
