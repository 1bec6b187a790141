"""Request-scoped cache of the authenticated creator's rows."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import UserId
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.payout import PayoutDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.payment import PaymentResponse
from tipjar_db.schemas.payout import PayoutTotals
from tipjar_db.schemas.profile import ProfileResponse


class CreatorSession:
    """Loads the creator's profile, payments and payout totals at most once per request.

    One instance is created per request and passed by reference to every service handling it.
    Writes that change cached rows call ``invalidate``.
    """

    def __init__(
        self,
        db: AsyncSession,
        profile: ProfileResponse,
        *,
        profile_dao: ProfileDAO,
        payment_dao: PaymentDAO,
        payout_dao: PayoutDAO,
    ) -> None:
        self.db = db
        self._profile = profile
        self.profile_dao = profile_dao
        self.payment_dao = payment_dao
        self.payout_dao = payout_dao
        self._payments: list[PaymentResponse] | None = None
        self._payout_totals: PayoutTotals | None = None
        self._profile_stale = False

    @property
    def user_id(self) -> UserId:
        return self._profile.id

    async def profile(self) -> ProfileResponse:
        if self._profile_stale:
            refreshed = await self.profile_dao.get(self.db, self._profile.id)
            if refreshed is not None:
                self._profile = refreshed
            self._profile_stale = False
        return self._profile

    async def payments(self) -> list[PaymentResponse]:
        if self._payments is None:
            self._payments = await self.payment_dao.list_for_creator(self.db, self._profile.id)
        return self._payments

    async def payout_totals(self) -> PayoutTotals:
        if self._payout_totals is None:
            self._payout_totals = await self.payout_dao.totals(self.db, self._profile.id)
        return self._payout_totals

    def invalidate(self) -> None:
        self._payments = None
        self._payout_totals = None
        self._profile_stale = True
