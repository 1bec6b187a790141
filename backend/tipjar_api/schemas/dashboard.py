"""Dashboard reporting schemas."""

from enum import StrEnum

from pydantic import Field

from tipjar_common.utils.json_model import JsonModel
from tipjar_db.schemas.payment import DonorTotal, PaymentResponse
from tipjar_db.schemas.profile import DonorVisibilitySettings


class DonationRange(StrEnum):
    ALL = "all"
    TODAY = "today"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"


class MonthOverMonth(JsonModel):
    current_month_amount: int = 0
    previous_month_amount: int = 0
    change_percent: float | None = None


class AnonymousStats(JsonModel):
    count: int = 0
    amount: int = 0


class DonationStats(JsonModel):
    total_amount: int = 0
    donation_count: int = 0
    unique_donors: int = 0
    last_30_days_amount: int = 0
    month_over_month: MonthOverMonth = Field(default_factory=MonthOverMonth)
    anonymous: AnonymousStats = Field(default_factory=AnonymousStats)


class DashboardDonations(JsonModel):
    range: DonationRange
    stats: DonationStats
    donations: list[PaymentResponse]


class TopDonors(JsonModel):
    visible: bool = True
    donors: list[DonorTotal] = Field(default_factory=list)
    anonymous: AnonymousStats | None = None
    settings: DonorVisibilitySettings = Field(default_factory=DonorVisibilitySettings)
