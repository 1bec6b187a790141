from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.core.app_error import Errors
from tipjar_common.ids import GoalId, UserId
from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.schemas.goal import GoalCreate, GoalResponse, GoalUpdate

logger = get_logger()


def _check_dates(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and end < start:
        raise Errors.Goal.INVALID.create(message="End date must not be before the start date")


class GoalService:
    def __init__(self, goal_dao: GoalDAO) -> None:
        self.goal_dao = goal_dao

    async def list_goals(self, db: AsyncSession, user_id: UserId) -> list[GoalResponse]:
        return await self.goal_dao.list_for_user(db, user_id)

    async def active_goal(self, db: AsyncSession, user_id: UserId) -> GoalResponse | None:
        return await self.goal_dao.get_active(db, user_id)

    async def get(self, db: AsyncSession, user_id: UserId, goal_id: GoalId) -> GoalResponse:
        goal = await self.goal_dao.get(db, user_id, goal_id)
        if goal is None:
            raise Errors.Goal.NOT_FOUND.create(details={"goal_id": str(goal_id)})
        return goal

    async def create(self, db: AsyncSession, user_id: UserId, obj_in: GoalCreate) -> GoalResponse:
        _check_dates(obj_in.start_date, obj_in.end_date)
        goal = await self.goal_dao.create(db, user_id, obj_in=obj_in)
        logger.info("Goal created", goal_id=goal.id, user_id=user_id, target_amount=goal.target_amount)
        return goal

    async def update(self, db: AsyncSession, user_id: UserId, goal_id: GoalId, obj_in: GoalUpdate) -> GoalResponse:
        current = await self.get(db, user_id, goal_id)
        changes = obj_in.model_dump(exclude_unset=True)
        _check_dates(changes.get("start_date", current.start_date), changes.get("end_date", current.end_date))

        goal = await self.goal_dao.update(db, user_id, goal_id, obj_in=obj_in)
        if goal is None:
            raise Errors.Goal.NOT_FOUND.create(details={"goal_id": str(goal_id)})
        return goal

    async def delete(self, db: AsyncSession, user_id: UserId, goal_id: GoalId) -> None:
        if not await self.goal_dao.delete(db, user_id, goal_id):
            raise Errors.Goal.NOT_FOUND.create(details={"goal_id": str(goal_id)})
        logger.info("Goal deleted", goal_id=goal_id, user_id=user_id)

    async def update_progress(self, db: AsyncSession, user_id: UserId, goal_id: GoalId, amount: int) -> GoalResponse:
        """Manual progress adjustment by the goal's owner."""
        await self.get(db, user_id, goal_id)
        if amount <= 0:
            raise Errors.Goal.INVALID.create(message="Progress amount must be greater than zero", details={"amount": amount})
        goal = await self.goal_dao.add_progress(db, goal_id, amount=amount)
        if goal is None:
            raise Errors.Goal.NOT_FOUND.create(details={"goal_id": str(goal_id)})
        return goal
