from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, Uuid, false, true
from sqlalchemy.orm import Mapped, mapped_column

from tipjar_common.db.db_utils import DateTimeUTC, JsonB
from tipjar_common.ids import UserId
from tipjar_db.db import Base
from tipjar_db.models.enum_utils import enum_values
from tipjar_db.models.enums import AccountType, ProfileRole


class Profile(Base):
    """Public creator profile. The id is the hosted auth user id."""

    __tablename__ = "profiles"

    id: Mapped[UserId] = mapped_column(Uuid(), primary_key=True, autoincrement=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    account_type: Mapped[AccountType | None] = mapped_column(
        Enum(AccountType, native_enum=False, values_callable=enum_values),
        nullable=True,
    )
    role: Mapped[ProfileRole] = mapped_column(
        Enum(ProfileRole, native_enum=False, values_callable=enum_values),
        default=ProfileRole.CREATOR,
        nullable=False,
    )

    # Donation tiers: icon ids and amounts in PLN major units
    small_icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    medium_icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    large_icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    small_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=50, server_default="50")
    medium_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=100, server_default="100")
    large_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=300, server_default="300")

    # Cached aggregates in minor units, refreshed from payments/payouts
    total_donations: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    available_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    social_links: Mapped[dict[str, Any]] = mapped_column(JsonB, nullable=False, default=dict)
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)


class DonorVisibility(Base):
    """Per-creator settings for the public top-donor list."""

    __tablename__ = "donor_visibility"

    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), primary_key=True, autoincrement=False)
    show_top_donors: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    top_donors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=5, server_default="5")
    hide_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
