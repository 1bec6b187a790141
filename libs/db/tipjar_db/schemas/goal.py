"""Donation goal schemas."""

from datetime import datetime

from pydantic import ConfigDict, Field

from tipjar_common.ids import GoalId, UserId
from tipjar_common.utils.json_model import JsonModel


class GoalCreate(JsonModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    target_amount: int = Field(gt=0)
    start_date: datetime | None = None
    end_date: datetime | None = None


class GoalUpdate(JsonModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target_amount: int | None = Field(default=None, gt=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool | None = None


class GoalResponse(JsonModel):
    id: GoalId
    user_id: UserId
    title: str
    description: str | None = None
    target_amount: int
    current_amount: int
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return min(100.0, self.current_amount * 100 / self.target_amount)


class GoalProgressUpdate(JsonModel):
    amount: int = Field(gt=0)
