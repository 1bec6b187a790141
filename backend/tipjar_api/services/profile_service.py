"""Profile service layer: first-authentication provisioning, public profile views and edits."""

from __future__ import annotations

import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.profile import DonationTier, PublicProfile, UsernameAvailability
from tipjar_common.core.app_error import Errors
from tipjar_common.core.jwt_utils import TokenData
from tipjar_common.ids import UserId
from tipjar_common.utils.identity_utils import is_valid_username, normalize_username, username_from_email
from tipjar_common.utils.utils import deep_merge, get_logger
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.profile import ProfileResponse, ProfileUpdate

logger = get_logger()

DEFAULT_ICON = "therapy"
_USERNAME_ATTEMPTS = 5
_TIER_FIELDS = ("small_amount", "medium_amount", "large_amount")


def validate_tiers(small: int, medium: int, large: int) -> None:
    """All tier amounts must be positive and strictly increasing."""
    if small <= 0 or medium <= 0 or large <= 0:
        raise Errors.Profile.INVALID_TIERS.create(message="All donation tier amounts must be greater than zero")
    if not small < medium < large:
        raise Errors.Profile.INVALID_TIERS.create(
            message="Donation tiers must increase: small < medium < large",
            details={"small": small, "medium": medium, "large": large},
        )


def icon_label(icon: str) -> str:
    return icon.replace("_", " ").replace("-", " ").strip().capitalize()


def tiers_for(profile: ProfileResponse) -> list[DonationTier]:
    tiers: list[DonationTier] = []
    for name, icon, amount in (
        ("small", profile.small_icon, profile.small_amount),
        ("medium", profile.medium_icon, profile.medium_amount),
        ("large", profile.large_icon, profile.large_amount),
    ):
        icon = icon or DEFAULT_ICON
        tiers.append(DonationTier(name=name, icon=icon, label=icon_label(icon), amount=amount))
    return tiers


class ProfileService:
    """Service layer for creator profiles.
    Coordinates between routers and the profile and goal DAOs.
    """

    def __init__(self, profile_dao: ProfileDAO, goal_dao: GoalDAO) -> None:
        self.profile_dao = profile_dao
        self.goal_dao = goal_dao

    async def get_by_id(self, db: AsyncSession, user_id: UserId) -> ProfileResponse:
        profile = await self.profile_dao.get(db, user_id)
        if profile is None:
            raise Errors.Profile.NOT_FOUND.create(details={"user_id": str(user_id)})
        return profile

    async def get_by_username(self, db: AsyncSession, username: str) -> ProfileResponse:
        profile = await self.profile_dao.get_by_username(db, username)
        if profile is None:
            raise Errors.Profile.NOT_FOUND.create(details={"username": username})
        return profile

    async def get_public_profile(self, db: AsyncSession, username: str) -> PublicProfile:
        profile = await self.get_by_username(db, username)
        active_goal = await self.goal_dao.get_active(db, profile.id)
        return PublicProfile(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            bio=profile.bio,
            avatar_url=profile.avatar_url,
            account_type=profile.account_type,
            tiers=tiers_for(profile),
            social_links=profile.social_links,
            total_donations=profile.total_donations,
            active_goal=active_goal,
        )

    async def check_availability(self, db: AsyncSession, username: str) -> UsernameAvailability:
        normalized = normalize_username(username)
        if not is_valid_username(normalized):
            return UsernameAvailability(username=normalized, valid=False, available=False)
        available = await self.profile_dao.is_username_available(db, normalized)
        return UsernameAvailability(username=normalized, valid=True, available=available)

    async def _pick_username(self, db: AsyncSession, token: TokenData) -> str:
        if token.username:
            requested = normalize_username(token.username)
            if await self.profile_dao.is_username_available(db, requested):
                return requested
            base = requested
        else:
            base = username_from_email(token.email or "") or "creator"

        for _ in range(_USERNAME_ATTEMPTS):
            candidate = f"{base}{secrets.randbelow(9000) + 1000}"
            if await self.profile_dao.is_username_available(db, candidate):
                return candidate

        raise Errors.Profile.USERNAME_TAKEN.create(message="Could not allocate a unique username", details={"base": base})

    async def ensure_profile(self, db: AsyncSession, token: TokenData) -> ProfileResponse:
        """Return the caller's profile, creating it on first authentication."""
        profile = await self.profile_dao.get(db, token.user_id)
        if profile is not None:
            return profile

        username = await self._pick_username(db, token)
        profile = await self.profile_dao.create(db, user_id=token.user_id, username=username, display_name=username)
        logger.info("Created profile on first authentication", user_id=token.user_id, username=username)
        return profile

    async def update_profile(self, db: AsyncSession, user_id: UserId, update: ProfileUpdate) -> ProfileResponse:
        current = await self.get_by_id(db, user_id)
        changes = update.model_dump(exclude_unset=True)
        for field in (*_TIER_FIELDS, "social_links"):
            if field in changes and changes[field] is None:
                del changes[field]

        if set(_TIER_FIELDS) & changes.keys():
            amounts = {tier: changes.get(tier, getattr(current, tier)) for tier in _TIER_FIELDS}
            validate_tiers(amounts["small_amount"], amounts["medium_amount"], amounts["large_amount"])

        social_links = changes.get("social_links")
        if social_links is not None:
            merged = deep_merge(current.social_links, social_links)
            # An empty url removes the link
            changes["social_links"] = {platform: url for platform, url in merged.items() if url}

        profile = await self.profile_dao.update(db, user_id, changes=changes)
        if profile is None:
            raise Errors.Profile.NOT_FOUND.create(details={"user_id": str(user_id)})
        logger.info("Profile updated", user_id=user_id, fields=sorted(changes))
        return profile
