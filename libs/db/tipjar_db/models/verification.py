from datetime import datetime

from sqlalchemy import Boolean, Enum, ForeignKey, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from tipjar_common.db.db_utils import DateTimeUTC
from tipjar_common.ids import UserId
from tipjar_db.db import Base
from tipjar_db.models.enum_utils import enum_values
from tipjar_db.models.enums import KycStatus


class UserVerification(Base):
    __tablename__ = "user_verifications"

    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), primary_key=True, autoincrement=False)
    kyc_status: Mapped[KycStatus] = mapped_column(
        Enum(KycStatus, native_enum=False, values_callable=enum_values),
        default=KycStatus.NOT_STARTED,
        nullable=False,
    )
    kyc_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    kyc_completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)
    phone_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    phone_verified_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(), nullable=True)


class PersonalData(Base):
    __tablename__ = "personal_data"

    user_id: Mapped[UserId] = mapped_column(Uuid(), ForeignKey("profiles.id"), primary_key=True, autoincrement=False)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(16), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    organization_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    nonprofit_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    mission_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    professional_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    portfolio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
