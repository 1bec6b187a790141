import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from tipjar_common.db.db_utils import DateTimeUTC
from tipjar_common.ids import GoalId, UserId
from tipjar_db.db import Base


class DonationGoal(Base):
    __tablename__ = "donation_goals"

    id: Mapped[GoalId] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    current_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    start_date: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
