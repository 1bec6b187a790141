"""PaymentDAO tests against an in-memory database."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import UserId
from tipjar_common.utils.utils import get_now
from tipjar_db.crud.payment import PaymentDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.schemas.payment import CheckoutCompletion, PaymentCreate
from tipjar_db.schemas.profile import ProfileResponse

payment_dao = PaymentDAO()


async def _pending(db: AsyncSession, creator: ProfileResponse, amount: int, **fields: str | None):
    return await payment_dao.create(db, obj_in=PaymentCreate(creator_id=creator.id, amount=amount, **fields))


async def test_create_inserts_pending_payment(db: AsyncSession, creator: ProfileResponse) -> None:
    payment = await _pending(db, creator, 5000, payer_name="Jan", message="Dzięki!")

    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 5000
    assert payment.currency == "PLN"
    assert payment.completed_at is None
    assert (await payment_dao.get(db, payment.id)) == payment


async def test_delete_removes_row(db: AsyncSession, creator: ProfileResponse) -> None:
    payment = await _pending(db, creator, 5000)

    assert await payment_dao.delete(db, payment.id) is True
    assert await payment_dao.get(db, payment.id) is None
    assert await payment_dao.delete(db, payment.id) is False


class TestCompleteCheckout:
    """Applying a completed checkout session."""

    async def test_first_delivery_completes_payment(self, db: AsyncSession, creator: ProfileResponse) -> None:
        payment = await _pending(db, creator, 5000)
        completion = CheckoutCompletion(
            stripe_session_id="cs_test_1",
            payment_amount=5000,
            payment_currency="PLN",
            customer_email="jan@example.com",
            customer_name="Jan",
        )

        result = await payment_dao.complete_checkout(db, payment.id, completion=completion, completed_at=get_now())

        assert result is not None
        assert result.newly_completed is True
        assert result.payment.status == PaymentStatus.COMPLETED
        assert result.payment.stripe_session_id == "cs_test_1"
        assert result.payment.customer_email == "jan@example.com"
        assert result.payment.completed_at is not None

    async def test_redelivery_is_not_newly_completed(self, db: AsyncSession, creator: ProfileResponse) -> None:
        payment = await _pending(db, creator, 5000)
        completion = CheckoutCompletion(stripe_session_id="cs_test_1", payment_amount=5000, payment_currency="PLN")

        first = await payment_dao.complete_checkout(db, payment.id, completion=completion, completed_at=get_now())
        second = await payment_dao.complete_checkout(db, payment.id, completion=completion, completed_at=get_now())

        assert first is not None and second is not None
        assert second.newly_completed is False
        assert second.payment.completed_at == first.payment.completed_at
        assert second.payment.status == PaymentStatus.COMPLETED

    async def test_unknown_payment_returns_none(self, db: AsyncSession, creator: ProfileResponse) -> None:
        payment = await _pending(db, creator, 5000)
        await payment_dao.delete(db, payment.id)

        completion = CheckoutCompletion(stripe_session_id="cs_test_1")
        assert await payment_dao.complete_checkout(db, payment.id, completion=completion, completed_at=get_now()) is None


async def test_record_external_reference(db: AsyncSession, creator: ProfileResponse) -> None:
    payment = await _pending(db, creator, 2500)

    result = await payment_dao.record_external_reference(db, payment.id, external_reference="pi_123", completed_at=get_now())
    again = await payment_dao.record_external_reference(db, payment.id, external_reference="pi_123", completed_at=get_now())

    assert result is not None and result.newly_completed is True
    assert result.payment.external_reference == "pi_123"
    assert again is not None and again.newly_completed is False


async def test_list_for_creator_only_returns_that_creators_payments(db: AsyncSession, creator: ProfileResponse) -> None:
    other = await ProfileDAO().create(db, user_id=UserId(uuid.uuid4()), username="other")
    await _pending(db, creator, 1000)
    await _pending(db, creator, 2000)
    await _pending(db, other, 3000)

    payments = await payment_dao.list_for_creator(db, creator.id)

    assert sorted(p.amount for p in payments) == [1000, 2000]


class TestRankDonors:
    """Donor totals grouped in the database."""

    async def _complete(self, db: AsyncSession, creator: ProfileResponse, amount: int, **fields: str | None) -> None:
        payment = await _pending(db, creator, amount, **fields)
        await payment_dao.record_external_reference(db, payment.id, external_reference=f"pi_{payment.id}", completed_at=get_now())

    async def test_groups_by_email_then_name(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await self._complete(db, creator, 1000, payer_email="jan@example.com", payer_name="Jan")
        await self._complete(db, creator, 4000, payer_email="jan@example.com", payer_name="Janek")
        await self._complete(db, creator, 3000, payer_name="Ola")
        await self._complete(db, creator, 2000, payer_name="Ola")
        await _pending(db, creator, 99000, payer_name="Ola")

        totals = {t.donor_key: t for t in await payment_dao.rank_donors(db, creator.id)}

        assert totals["jan@example.com"].total_amount == 5000
        assert totals["jan@example.com"].donation_count == 2
        assert totals["Ola"].total_amount == 5000
        assert totals["Ola"].payer_email is None

    async def test_each_anonymous_payment_is_its_own_donor(self, db: AsyncSession, creator: ProfileResponse) -> None:
        await self._complete(db, creator, 1000)
        await self._complete(db, creator, 1000, payer_name="", payer_email="")

        totals = await payment_dao.rank_donors(db, creator.id)

        assert len(totals) == 2
        assert all(t.is_anonymous for t in totals)
        assert all(t.donation_count == 1 for t in totals)
