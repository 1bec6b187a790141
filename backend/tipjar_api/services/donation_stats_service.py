"""Dashboard statistics, top donor ranking and donor visibility settings."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.dashboard import DashboardDonations, DonationRange, TopDonors
from tipjar_api.services import donation_stats
from tipjar_api.services.creator_session import CreatorSession
from tipjar_common.core.app_error import Errors
from tipjar_common.ids import UserId
from tipjar_common.utils.utils import get_now, get_logger
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.payment import DonorTotal, PaymentResponse
from tipjar_db.schemas.profile import DonorVisibilitySettings

logger = get_logger()


class DonationStatsService:
    def __init__(self, profile_dao: ProfileDAO, payment_dao: PaymentDAO) -> None:
        self.profile_dao = profile_dao
        self.payment_dao = payment_dao

    async def dashboard(self, session: CreatorSession, date_range: DonationRange = DonationRange.ALL) -> DashboardDonations:
        """Rows and stats for the selected range. Month-over-month always looks at every row."""
        now = get_now()
        payments = await session.payments()
        in_range = donation_stats.filter_by_range(payments, date_range, now)

        stats = donation_stats.compute_stats(in_range, now)
        stats.month_over_month = donation_stats.month_over_month(payments, now)
        stats.last_30_days_amount = donation_stats.last_30_days_amount(payments, now)
        return DashboardDonations(range=date_range, stats=stats, donations=in_range)

    async def top_donors(self, db: AsyncSession, creator_id: UserId, payments: list[PaymentResponse] | None = None) -> list[DonorTotal]:
        """Database ranking first, local ranking over the creator's rows if the query fails."""
        try:
            return donation_stats.sort_donor_totals(await self.payment_dao.rank_donors(db, creator_id))
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Donor ranking query failed, ranking locally", creator_id=creator_id, error=str(e))

        if payments is None:
            payments = await self.payment_dao.list_for_creator(db, creator_id)
        return donation_stats.rank_top_donors(payments)

    async def creator_top_donors(self, session: CreatorSession) -> TopDonors:
        """The creator's own view: the full ranking, regardless of what the public sees."""
        ranking = await self.top_donors(session.db, session.user_id, await session.payments())
        settings = await self.profile_dao.get_donor_visibility(session.db, session.user_id)
        named, anonymous = donation_stats.split_anonymous(ranking)
        return TopDonors(visible=settings.show_top_donors, donors=named, anonymous=anonymous, settings=settings)

    async def public_top_donors(self, db: AsyncSession, username: str) -> TopDonors:
        profile = await self.profile_dao.get_by_username(db, username)
        if profile is None:
            raise Errors.Profile.NOT_FOUND.create(details={"username": username})

        settings = await self.profile_dao.get_donor_visibility(db, profile.id)
        if not settings.show_top_donors:
            return TopDonors(visible=False, settings=settings)
        ranking = await self.top_donors(db, profile.id)
        return donation_stats.apply_visibility(ranking, settings)

    async def get_visibility(self, db: AsyncSession, user_id: UserId) -> DonorVisibilitySettings:
        return await self.profile_dao.get_donor_visibility(db, user_id)

    async def save_visibility(self, db: AsyncSession, user_id: UserId, settings: DonorVisibilitySettings) -> DonorVisibilitySettings:
        saved = await self.profile_dao.save_donor_visibility(db, user_id, settings=settings)
        logger.info("Donor visibility updated", user_id=user_id, **saved.model_dump())
        return saved
