"""Public profile schemas."""

from typing import Any

from pydantic import Field

from tipjar_common.ids import UserId
from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import AccountType
from tipjar_db.schemas.goal import GoalResponse


class DonationTier(JsonModel):
    name: str
    icon: str
    label: str
    amount: int


class PublicProfile(JsonModel):
    id: UserId
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    account_type: AccountType | None = None
    tiers: list[DonationTier] = Field(default_factory=list)
    social_links: dict[str, Any] = Field(default_factory=dict)
    total_donations: int = 0
    active_goal: GoalResponse | None = None


class UsernameAvailability(JsonModel):
    username: str
    valid: bool
    available: bool
