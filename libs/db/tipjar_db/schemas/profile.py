"""Profile schemas."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from tipjar_common.ids import UserId
from tipjar_common.utils.json_model import JsonModel
from tipjar_db.models.enums import AccountType, ProfileRole


class ProfileUpdate(JsonModel):
    """Editable profile fields. Identity, timestamps and cached aggregates are not editable."""

    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    account_type: AccountType | None = None
    small_icon: str | None = None
    medium_icon: str | None = None
    large_icon: str | None = None
    small_amount: int | None = None
    medium_amount: int | None = None
    large_amount: int | None = None
    social_links: dict[str, str] | None = None


class ProfileResponse(JsonModel):
    id: UserId
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    account_type: AccountType | None = None
    role: ProfileRole = ProfileRole.CREATOR
    small_icon: str | None = None
    medium_icon: str | None = None
    large_icon: str | None = None
    small_amount: int = 50
    medium_amount: int = 100
    large_amount: int = 300
    total_donations: int = 0
    available_balance: int = 0
    social_links: dict[str, Any] = Field(default_factory=dict)
    onboarding_completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def icons_selected(self) -> bool:
        return bool(self.small_icon and self.medium_icon and self.large_icon)


class DonorVisibilitySettings(JsonModel):
    show_top_donors: bool = True
    top_donors_count: int = Field(default=5, ge=1, le=50)
    hide_anonymous: bool = False

    model_config = ConfigDict(from_attributes=True)
