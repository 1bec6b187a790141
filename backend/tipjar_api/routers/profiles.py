from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_current_creator, get_db, get_profile_service
from tipjar_api.schemas.profile import PublicProfile, UsernameAvailability
from tipjar_api.services.profile_service import ProfileService
from tipjar_common.core.logging_service import get_logger
from tipjar_db.schemas.profile import ProfileResponse, ProfileUpdate

logger = get_logger(__name__)

profiles_router = APIRouter()


@profiles_router.get("/profiles/availability", response_model=UsernameAvailability)
async def check_username_availability(
    username: Annotated[str, Query(min_length=1, max_length=64)],
    db: Annotated[AsyncSession, Depends(get_db)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
) -> UsernameAvailability:
    return await profile_service.check_availability(db, username)


@profiles_router.get("/profiles/{username}", response_model=PublicProfile)
async def get_public_profile(
    username: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
) -> PublicProfile:
    """Public donation page data: tiers, social links and the active goal."""
    return await profile_service.get_public_profile(db, username)


@profiles_router.get("/me/profile", response_model=ProfileResponse)
async def get_my_profile(current_creator: Annotated[ProfileResponse, Depends(get_current_creator)]) -> ProfileResponse:
    return current_creator


@profiles_router.patch("/me/profile", response_model=ProfileResponse)
async def update_my_profile(
    update: ProfileUpdate,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
) -> ProfileResponse:
    logger.info("Profile update requested", user_id=str(current_creator.id))
    return await profile_service.update_profile(db, current_creator.id, update)
