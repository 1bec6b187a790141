from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import GoalId, UserId
from tipjar_db.models.goal import DonationGoal
from tipjar_db.schemas.goal import GoalCreate, GoalResponse, GoalUpdate


class GoalDAO:
    async def list_for_user(self, db: AsyncSession, user_id: UserId) -> list[GoalResponse]:
        result = await db.execute(select(DonationGoal).where(DonationGoal.user_id == user_id).order_by(DonationGoal.created_at.desc()))
        return [GoalResponse.model_validate(goal) for goal in result.scalars().all()]

    async def get(self, db: AsyncSession, user_id: UserId, goal_id: GoalId) -> GoalResponse | None:
        result = await db.execute(select(DonationGoal).where(DonationGoal.id == goal_id, DonationGoal.user_id == user_id))
        goal = result.scalar_one_or_none()
        return GoalResponse.model_validate(goal) if goal else None

    async def get_active(self, db: AsyncSession, user_id: UserId) -> GoalResponse | None:
        """The most recently created active goal."""
        result = await db.execute(
            select(DonationGoal)
            .where(DonationGoal.user_id == user_id, DonationGoal.active.is_(True))
            .order_by(DonationGoal.created_at.desc())
            .limit(1)
        )
        goal = result.scalar_one_or_none()
        return GoalResponse.model_validate(goal) if goal else None

    async def create(self, db: AsyncSession, user_id: UserId, *, obj_in: GoalCreate) -> GoalResponse:
        goal = DonationGoal(
            user_id=user_id,
            title=obj_in.title,
            description=obj_in.description,
            target_amount=obj_in.target_amount,
            current_amount=0,
            start_date=obj_in.start_date,
            end_date=obj_in.end_date,
            active=True,
        )
        db.add(goal)
        await db.flush()
        await db.refresh(goal)
        return GoalResponse.model_validate(goal)

    async def update(self, db: AsyncSession, user_id: UserId, goal_id: GoalId, *, obj_in: GoalUpdate) -> GoalResponse | None:
        result = await db.execute(select(DonationGoal).where(DonationGoal.id == goal_id, DonationGoal.user_id == user_id))
        goal = result.scalar_one_or_none()
        if goal is None:
            return None
        for field, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(goal, field, value)
        await db.flush()
        await db.refresh(goal)
        return GoalResponse.model_validate(goal)

    async def delete(self, db: AsyncSession, user_id: UserId, goal_id: GoalId) -> bool:
        result = await db.execute(select(DonationGoal).where(DonationGoal.id == goal_id, DonationGoal.user_id == user_id))
        goal = result.scalar_one_or_none()
        if goal is None:
            return False
        await db.delete(goal)
        await db.flush()
        return True

    async def add_progress(self, db: AsyncSession, goal_id: GoalId, *, amount: int) -> GoalResponse | None:
        """Add to the goal's progress; a goal that reaches its target stops being active."""
        goal = await db.get(DonationGoal, goal_id)
        if goal is None:
            return None
        goal.current_amount = goal.current_amount + amount
        goal.active = goal.current_amount < goal.target_amount
        await db.flush()
        await db.refresh(goal)
        return GoalResponse.model_validate(goal)
