import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tipjar_common.db.db_utils import DateTimeUTC
from tipjar_common.ids import BankAccountId, PayoutId, UserId
from tipjar_db.db import Base
from tipjar_db.models.enum_utils import enum_values
from tipjar_db.models.enums import PayoutStatus


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id: Mapped[BankAccountId] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), index=True, nullable=False)
    account_number: Mapped[str] = mapped_column(String(34), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    swift_code: Mapped[str | None] = mapped_column(String(11), nullable=True)


class Payout(Base):
    """A withdrawal request. Status transitions happen in back-office tooling."""

    __tablename__ = "payouts"

    id: Mapped[PayoutId] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), index=True, nullable=False)
    bank_account_id: Mapped[BankAccountId] = mapped_column(Uuid(), ForeignKey("bank_accounts.id"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PayoutStatus] = mapped_column(
        Enum(PayoutStatus, native_enum=False, values_callable=enum_values),
        default=PayoutStatus.PENDING,
        nullable=False,
        index=True,
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)
