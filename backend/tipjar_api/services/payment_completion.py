"""Bookkeeping applied once when a payment first becomes completed."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.payment import PaymentResponse

logger = get_logger()


class PaymentCompletionBookkeeper:
    """Refreshes the creator's cached totals and advances the active goal.

    Runs inside the caller's transaction so the status change and the aggregates commit together.
    """

    def __init__(self, profile_dao: ProfileDAO, goal_dao: GoalDAO) -> None:
        self.profile_dao = profile_dao
        self.goal_dao = goal_dao

    async def on_completed(self, db: AsyncSession, payment: PaymentResponse) -> None:
        profile = await self.profile_dao.refresh_aggregates(db, payment.creator_id)
        goal = await self.goal_dao.get_active(db, payment.creator_id)
        if goal is not None:
            goal = await self.goal_dao.add_progress(db, goal.id, amount=payment.amount)

        logger.info(
            "Payment completion recorded",
            payment_id=payment.id,
            creator_id=payment.creator_id,
            amount=payment.amount,
            total_donations=profile.total_donations if profile else None,
            goal_id=goal.id if goal else None,
        )
