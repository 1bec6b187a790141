from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import UserId
from tipjar_common.utils.identity_utils import normalize_username
from tipjar_db.models.enums import PaymentStatus, PayoutStatus
from tipjar_db.models.payment import Payment
from tipjar_db.models.payout import Payout
from tipjar_db.models.profile import DonorVisibility, Profile
from tipjar_db.schemas.profile import DonorVisibilitySettings, ProfileResponse

# Never changed through ``update``
PROTECTED_FIELDS = frozenset({"id", "username", "created_at", "updated_at", "total_donations", "available_balance", "role"})


class ProfileDAO:
    """Data Access Object for creator profiles.
    Returns Pydantic objects instead of SQLAlchemy models. Writes are flushed; the caller owns the transaction.
    """

    async def get(self, db: AsyncSession, user_id: UserId) -> ProfileResponse | None:
        profile = await db.get(Profile, user_id)
        return ProfileResponse.model_validate(profile) if profile else None

    async def get_by_username(self, db: AsyncSession, username: str) -> ProfileResponse | None:
        result = await db.execute(select(Profile).where(Profile.username == normalize_username(username)))
        profile = result.scalar_one_or_none()
        return ProfileResponse.model_validate(profile) if profile else None

    async def is_username_available(self, db: AsyncSession, username: str) -> bool:
        result = await db.execute(select(func.count()).select_from(Profile).where(Profile.username == normalize_username(username)))
        return (result.scalar() or 0) == 0

    async def create(self, db: AsyncSession, *, user_id: UserId, username: str, display_name: str | None = None) -> ProfileResponse:
        profile = Profile(
            id=user_id,
            username=normalize_username(username),
            display_name=display_name or username,
            total_donations=0,
            available_balance=0,
            social_links={},
        )
        db.add(profile)
        await db.flush()
        await db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    async def update(self, db: AsyncSession, user_id: UserId, *, changes: dict[str, Any]) -> ProfileResponse | None:
        profile = await db.get(Profile, user_id)
        if profile is None:
            return None
        for field, value in changes.items():
            if field in PROTECTED_FIELDS:
                continue
            setattr(profile, field, value)
        await db.flush()
        await db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    async def refresh_aggregates(self, db: AsyncSession, user_id: UserId) -> ProfileResponse | None:
        """Recompute the cached totals from payment and payout rows inside the caller's transaction."""
        profile = await db.get(Profile, user_id)
        if profile is None:
            return None

        total_result = await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.creator_id == user_id,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        paid_out_result = await db.execute(
            select(func.coalesce(func.sum(Payout.amount), 0)).where(
                Payout.user_id == user_id,
                Payout.status == PayoutStatus.COMPLETED,
            )
        )
        total = int(total_result.scalar() or 0)
        paid_out = int(paid_out_result.scalar() or 0)

        profile.total_donations = total
        profile.available_balance = max(0, total - paid_out)
        await db.flush()
        await db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    async def list_ids(self, db: AsyncSession) -> list[UserId]:
        result = await db.execute(select(Profile.id))
        return [UserId(user_id) for user_id in result.scalars().all()]

    async def get_donor_visibility(self, db: AsyncSession, user_id: UserId) -> DonorVisibilitySettings:
        settings = await db.get(DonorVisibility, user_id)
        return DonorVisibilitySettings.model_validate(settings) if settings else DonorVisibilitySettings()

    async def save_donor_visibility(self, db: AsyncSession, user_id: UserId, *, settings: DonorVisibilitySettings) -> DonorVisibilitySettings:
        row = await db.get(DonorVisibility, user_id)
        if row is None:
            row = DonorVisibility(user_id=user_id)
            db.add(row)
        row.show_top_donors = settings.show_top_donors
        row.top_donors_count = settings.top_donors_count
        row.hide_anonymous = settings.hide_anonymous
        await db.flush()
        await db.refresh(row)
        return DonorVisibilitySettings.model_validate(row)
