"""DonationStatsService tests: dashboard stats and top-donor lists."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.dashboard import DonationRange
from tipjar_api.services import donation_stats
from tipjar_api.services.creator_session import CreatorSession
from tipjar_api.services.donation_stats_service import DonationStatsService
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.utils.utils import get_now
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.payout import PayoutDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.payment import PaymentCreate
from tipjar_db.schemas.profile import DonorVisibilitySettings, ProfileResponse


async def _donate(db: AsyncSession, creator: ProfileResponse, amount: int, *, completed: bool = True, **fields: str | None) -> None:
    payment = await PaymentDAO().create(db, obj_in=PaymentCreate(creator_id=creator.id, amount=amount, **fields))
    if completed:
        await PaymentDAO().record_external_reference(db, payment.id, external_reference=f"pi_{payment.id}", completed_at=get_now())


def _build_service() -> DonationStatsService:
    return DonationStatsService(ProfileDAO(), PaymentDAO())


def _build_session(db: AsyncSession, creator: ProfileResponse) -> CreatorSession:
    return CreatorSession(db, creator, profile_dao=ProfileDAO(), payment_dao=PaymentDAO(), payout_dao=PayoutDAO())


@pytest.mark.asyncio
async def test_database_and_local_rankings_agree(db: AsyncSession, creator: ProfileResponse) -> None:
    await _donate(db, creator, 1000, payer_email="jan@example.com", payer_name="Jan")
    await _donate(db, creator, 4000, payer_email="jan@example.com", payer_name="Janek")
    await _donate(db, creator, 5000, payer_name="Ola")
    await _donate(db, creator, 2500, payer_name="", payer_email="")
    await _donate(db, creator, 2500)
    await _donate(db, creator, 8000, payer_name="Piotr", completed=False)

    from_db = donation_stats.sort_donor_totals(await PaymentDAO().rank_donors(db, creator.id))
    local = donation_stats.rank_top_donors(await PaymentDAO().list_for_creator(db, creator.id))

    assert [(t.donor_key, t.total_amount, t.donation_count) for t in from_db] == [
        (t.donor_key, t.total_amount, t.donation_count) for t in local
    ]
    assert [t.donor_key for t in from_db][:2] == ["Ola", "jan@example.com"]


@pytest.mark.asyncio
async def test_top_donors_falls_back_to_local_ranking(db: AsyncSession, creator: ProfileResponse) -> None:
    await _donate(db, creator, 3000, payer_name="Ola")
    await db.commit()
    payment_dao = PaymentDAO()
    payment_dao.rank_donors = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("no such function")))
    service = DonationStatsService(ProfileDAO(), payment_dao)

    ranking = await service.top_donors(db, creator.id)

    assert [(t.donor_key, t.total_amount) for t in ranking] == [("Ola", 3000)]


@pytest.mark.asyncio
async def test_dashboard_range_filters_totals(db: AsyncSession, creator: ProfileResponse) -> None:
    await _donate(db, creator, 5000, payer_email="jan@example.com")
    await _donate(db, creator, 700, completed=False)

    result = await _build_service().dashboard(_build_session(db, creator), DonationRange.TODAY)

    assert result.range == DonationRange.TODAY
    assert result.stats.total_amount == 5000
    assert result.stats.donation_count == 1
    assert result.stats.unique_donors == 1
    assert result.stats.month_over_month.current_month_amount == 5000
    assert len(result.donations) == 2


class TestPublicTopDonors:
    """The public list honours the creator's visibility settings."""

    async def test_unknown_creator(self, db: AsyncSession) -> None:
        with pytest.raises(AppException) as exc_info:
            await _build_service().public_top_donors(db, "nobody")

        assert Errors.Profile.NOT_FOUND.is_(exc_info.value)

    async def test_hidden_list_does_not_query_payments(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await ProfileDAO().save_donor_visibility(db, creator.id, settings=DonorVisibilitySettings(show_top_donors=False))
        payment_dao = MagicMock(spec=PaymentDAO)
        service = DonationStatsService(ProfileDAO(), payment_dao)

        result = await service.public_top_donors(db, "magda")

        assert result.visible is False
        payment_dao.rank_donors.assert_not_called()

    async def test_visible_list(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await ProfileDAO().save_donor_visibility(db, creator.id, settings=DonorVisibilitySettings(top_donors_count=1))
        await _donate(db, creator, 3000, payer_name="Ola")
        await _donate(db, creator, 1000, payer_name="Jan")
        await _donate(db, creator, 500)

        result = await _build_service().public_top_donors(db, "magda")

        assert [t.donor_key for t in result.donors] == ["Ola"]
        assert result.anonymous is not None
        assert result.anonymous.amount == 500

    async def test_creator_view_is_not_truncated(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await ProfileDAO().save_donor_visibility(db, creator.id, settings=DonorVisibilitySettings(top_donors_count=1))
        await _donate(db, creator, 3000, payer_name="Ola")
        await _donate(db, creator, 1000, payer_name="Jan")

        result = await _build_service().creator_top_donors(_build_session(db, creator))

        assert [t.donor_key for t in result.donors] == ["Ola", "Jan"]
