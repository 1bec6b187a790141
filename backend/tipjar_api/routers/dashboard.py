from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.dependencies import get_current_creator, get_db, get_donation_stats_service, require_onboarding_completed
from tipjar_api.schemas.dashboard import DashboardDonations, DonationRange, TopDonors
from tipjar_api.services.creator_session import CreatorSession
from tipjar_api.services.donation_stats_service import DonationStatsService
from tipjar_db.schemas.profile import DonorVisibilitySettings, ProfileResponse

dashboard_router = APIRouter()


@dashboard_router.get("/dashboard/donations", response_model=DashboardDonations)
async def get_dashboard_donations(
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    stats_service: Annotated[DonationStatsService, Depends(get_donation_stats_service)],
    date_range: Annotated[DonationRange, Query(alias="range")] = DonationRange.ALL,
) -> DashboardDonations:
    return await stats_service.dashboard(session, date_range)


@dashboard_router.get("/dashboard/top-donors", response_model=TopDonors)
async def get_my_top_donors(
    session: Annotated[CreatorSession, Depends(require_onboarding_completed)],
    stats_service: Annotated[DonationStatsService, Depends(get_donation_stats_service)],
) -> TopDonors:
    return await stats_service.creator_top_donors(session)


@dashboard_router.get("/creators/{username}/top-donors", response_model=TopDonors)
async def get_public_top_donors(
    username: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    stats_service: Annotated[DonationStatsService, Depends(get_donation_stats_service)],
) -> TopDonors:
    return await stats_service.public_top_donors(db, username)


@dashboard_router.get("/me/donor-visibility", response_model=DonorVisibilitySettings)
async def get_donor_visibility(
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    stats_service: Annotated[DonationStatsService, Depends(get_donation_stats_service)],
) -> DonorVisibilitySettings:
    return await stats_service.get_visibility(db, current_creator.id)


@dashboard_router.put("/me/donor-visibility", response_model=DonorVisibilitySettings)
async def save_donor_visibility(
    settings: DonorVisibilitySettings,
    current_creator: Annotated[ProfileResponse, Depends(get_current_creator)],
    db: Annotated[AsyncSession, Depends(get_db)],
    stats_service: Annotated[DonationStatsService, Depends(get_donation_stats_service)],
) -> DonorVisibilitySettings:
    return await stats_service.save_visibility(db, current_creator.id, settings)
