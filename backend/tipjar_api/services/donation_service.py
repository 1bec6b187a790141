"""Donation intake: pending payment row first, then a hosted checkout session for it."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.donation import DonationCreated, DonationCreateRequest
from tipjar_api.services.stripe_service import StripeService
from tipjar_common.core.app_error import Errors
from tipjar_common.core.config_service import ConfigService
from tipjar_common.ids import PaymentId
from tipjar_common.utils.identity_utils import is_valid_email, normalize_email
from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.schemas.payment import PaymentCreate

logger = get_logger()


class DonationService:
    """Creates donations for a creator.

    There is no idempotency key: each submission inserts its own pending row.
    """

    def __init__(self, profile_dao: ProfileDAO, payment_dao: PaymentDAO, stripe_service: StripeService, config: ConfigService) -> None:
        self.profile_dao = profile_dao
        self.payment_dao = payment_dao
        self.stripe_service = stripe_service
        self.config = config

    def validate_amount(self, amount: int) -> None:
        min_amount = self.config.donations.min_amount
        if amount < min_amount:
            raise Errors.Donation.AMOUNT_TOO_LOW.create(details={"amount": amount, "min_amount": min_amount})

    async def create_donation(self, db: AsyncSession, *, creator_username: str, request: DonationCreateRequest, origin: str) -> DonationCreated:
        # Validation happens before any network call
        self.validate_amount(request.amount)
        payer_email = normalize_email(request.payer_email)
        if payer_email is not None and not is_valid_email(payer_email):
            raise Errors.Generic.INVALID_INPUT.create(message="Invalid email format", details={"field": "payerEmail"})
        payer_name = (request.payer_name or "").strip() or None

        creator = await self.profile_dao.get_by_username(db, creator_username)
        if creator is None:
            raise Errors.Profile.NOT_FOUND.create(details={"username": creator_username})

        # Refuse outright when the processor is unreachable
        await self.stripe_service.check_connection()

        payment = await self.payment_dao.create(
            db,
            obj_in=PaymentCreate(
                creator_id=creator.id,
                amount=request.amount,
                currency=self.config.donations.currency,
                message=request.message,
                payer_name=payer_name,
                payer_email=payer_email,
            ),
        )
        await db.commit()
        logger.info("Pending donation created", payment_id=payment.id, creator_id=creator.id, amount=payment.amount)

        try:
            session = await self.stripe_service.create_checkout_session(
                payment_id=payment.id,
                amount=payment.amount,
                currency=payment.currency,
                origin=origin,
                email=payer_email,
                name=payer_name,
                description=request.description,
            )
        except Exception:
            logger.exception("Checkout session creation failed, removing pending donation", payment_id=payment.id)
            await self._remove_pending(db, payment.id)
            raise

        return DonationCreated(payment_id=payment.id, checkout_session_id=session.id, redirect_url=session.url)

    async def _remove_pending(self, db: AsyncSession, payment_id: PaymentId) -> None:
        """Compensating delete for a pending row whose checkout session could not be created."""
        try:
            await self.payment_dao.delete(db, payment_id)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            # The processor error is what the caller needs to see; the orphan is logged for cleanup
            logger.exception("Failed to remove pending donation; orphaned row remains", payment_id=payment_id)
