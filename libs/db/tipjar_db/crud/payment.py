"""DAO for donation payments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Uuid, case, func, select, type_coerce
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import PaymentId, UserId
from tipjar_common.utils.utils import get_logger
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.models.payment import Payment
from tipjar_db.schemas.payment import CheckoutCompletion, CompletionResult, DonorTotal, PaymentCreate, PaymentResponse, donor_key

logger = get_logger(__name__)


class PaymentDAO:
    """Writes are flushed; the caller owns the transaction."""

    async def create(self, db: AsyncSession, *, obj_in: PaymentCreate) -> PaymentResponse:
        payment = Payment(
            creator_id=obj_in.creator_id,
            amount=obj_in.amount,
            currency=obj_in.currency,
            status=PaymentStatus.PENDING,
            message=obj_in.message,
            payer_name=obj_in.payer_name,
            payer_email=obj_in.payer_email,
            payment_type=obj_in.payment_type,
        )
        db.add(payment)
        await db.flush()
        await db.refresh(payment)
        return PaymentResponse.model_validate(payment)

    async def get(self, db: AsyncSession, payment_id: PaymentId) -> PaymentResponse | None:
        payment = await db.get(Payment, payment_id)
        return PaymentResponse.model_validate(payment) if payment else None

    async def delete(self, db: AsyncSession, payment_id: PaymentId) -> bool:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            return False
        await db.delete(payment)
        await db.flush()
        return True

    async def record_external_reference(
        self,
        db: AsyncSession,
        payment_id: PaymentId,
        *,
        external_reference: str,
        completed_at: datetime,
    ) -> CompletionResult | None:
        """Store the processor payment id and mark the payment completed."""
        payment = await db.get(Payment, payment_id)
        if payment is None:
            return None

        newly_completed = payment.status != PaymentStatus.COMPLETED
        payment.external_reference = external_reference
        if newly_completed:
            payment.status = PaymentStatus.COMPLETED
            payment.completed_at = completed_at
        await db.flush()
        await db.refresh(payment)
        return CompletionResult(payment=PaymentResponse.model_validate(payment), newly_completed=newly_completed)

    async def complete_checkout(
        self,
        db: AsyncSession,
        payment_id: PaymentId,
        *,
        completion: CheckoutCompletion,
        completed_at: datetime,
    ) -> CompletionResult | None:
        """Apply a completed checkout session. Redelivery sets the same fields again."""
        payment = await db.get(Payment, payment_id)
        if payment is None:
            return None

        newly_completed = payment.status != PaymentStatus.COMPLETED
        payment.status = PaymentStatus.COMPLETED
        payment.stripe_session_id = completion.stripe_session_id
        payment.payment_amount = completion.payment_amount
        payment.payment_currency = completion.payment_currency
        payment.customer_email = completion.customer_email
        payment.customer_name = completion.customer_name
        if newly_completed or payment.completed_at is None:
            payment.completed_at = completed_at
        await db.flush()
        await db.refresh(payment)
        return CompletionResult(payment=PaymentResponse.model_validate(payment), newly_completed=newly_completed)

    async def reject_checkout(self, db: AsyncSession, payment_id: PaymentId, *, completion: CheckoutCompletion) -> PaymentResponse | None:
        """Mark a pending payment failed, keeping what the processor captured for reconciliation."""
        payment = await db.get(Payment, payment_id)
        if payment is None or payment.status != PaymentStatus.PENDING:
            return None

        payment.status = PaymentStatus.FAILED
        payment.stripe_session_id = completion.stripe_session_id
        payment.payment_amount = completion.payment_amount
        payment.payment_currency = completion.payment_currency
        payment.customer_email = completion.customer_email
        payment.customer_name = completion.customer_name
        await db.flush()
        await db.refresh(payment)
        return PaymentResponse.model_validate(payment)

    async def list_for_creator(
        self,
        db: AsyncSession,
        creator_id: UserId,
        *,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[PaymentResponse]:
        """All of a creator's payments, newest first."""
        query = select(Payment).where(Payment.creator_id == creator_id)
        if created_from is not None:
            query = query.where(Payment.created_at >= created_from)
        if created_to is not None:
            query = query.where(Payment.created_at < created_to)
        result = await db.execute(query.order_by(Payment.created_at.desc()))
        return [PaymentResponse.model_validate(row) for row in result.scalars().all()]

    async def rank_donors(self, db: AsyncSession, creator_id: UserId) -> list[DonorTotal]:
        """Completed totals grouped by donor identity, computed in the database."""
        email = func.nullif(Payment.payer_email, "")
        name = func.nullif(Payment.payer_name, "")
        identity = func.coalesce(email, name)
        anonymous_id = type_coerce(case((identity.is_(None), Payment.id), else_=None), Uuid())

        query = (
            select(
                identity.label("donor_identity"),
                anonymous_id.label("anonymous_id"),
                func.max(name).label("payer_name"),
                func.max(email).label("payer_email"),
                func.sum(Payment.amount).label("total_amount"),
                func.count(Payment.id).label("donation_count"),
            )
            .where(Payment.creator_id == creator_id, Payment.status == PaymentStatus.COMPLETED)
            .group_by("donor_identity", "anonymous_id")
        )
        result = await db.execute(query)
        return [
            DonorTotal(
                donor_key=donor_key(row.donor_identity, None, row.anonymous_id),
                payer_name=row.payer_name,
                payer_email=row.payer_email,
                total_amount=int(row.total_amount or 0),
                donation_count=int(row.donation_count or 0),
            )
            for row in result.all()
        ]
