from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_current_creator, get_db, get_goal_service
from tipjar_api.services.goal_service import GoalService
from tipjar_common.ids import GoalId
from tipjar_db.schemas.goal import GoalCreate, GoalProgressUpdate, GoalResponse, GoalUpdate
from tipjar_db.schemas.profile import ProfileResponse

goals_router = APIRouter()


@goals_router.get("/goals", response_model=list[GoalResponse])
async def list_goals(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    goal_service: Annotated[GoalService, Depends(get_goal_service)],
) -> list[GoalResponse]:
    return await goal_service.list_goals(db, current_creator.id)


@goals_router.post("/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal_in: GoalCreate,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    goal_service: Annotated[GoalService, Depends(get_goal_service)],
) -> GoalResponse:
    return await goal_service.create(db, current_creator.id, goal_in)


@goals_router.patch("/goals/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: GoalId,
    goal_in: GoalUpdate,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    goal_service: Annotated[GoalService, Depends(get_goal_service)],
) -> GoalResponse:
    return await goal_service.update(db, current_creator.id, goal_id, goal_in)


@goals_router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(
    goal_id: GoalId,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    goal_service: Annotated[GoalService, Depends(get_goal_service)],
) -> Response:
    await goal_service.delete(db, current_creator.id, goal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@goals_router.post("/goals/{goal_id}/progress", response_model=GoalResponse)
async def add_goal_progress(
    goal_id: GoalId,
    progress: GoalProgressUpdate,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    goal_service: Annotated[GoalService, Depends(get_goal_service)],
) -> GoalResponse:
    return await goal_service.update_progress(db, current_creator.id, goal_id, progress.amount)
