import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tipjar_common.db.db_utils import DateTimeUTC
from tipjar_common.ids import PaymentId, UserId
from tipjar_db.db import Base
from tipjar_db.models.enum_utils import enum_values
from tipjar_db.models.enums import PaymentStatus


class Payment(Base):
    """A single donation. Amounts are in minor units."""

    __tablename__ = "payments"

    id: Mapped[PaymentId] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    creator_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), index=True, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PLN")
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False, values_callable=enum_values),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_type: Mapped[str] = mapped_column(String(32), nullable=False, default="stripe")

    # Processor references and captured values
    external_reference: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    payment_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payment_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)
