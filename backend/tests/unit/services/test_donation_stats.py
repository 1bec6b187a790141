"""Unit tests for the pure donation reductions."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from tipjar_api.schemas.dashboard import AnonymousStats, DonationRange
from tipjar_api.services import donation_stats
from tipjar_common.ids import PaymentId, UserId
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.schemas.payment import PaymentResponse
from tipjar_db.schemas.profile import DonorVisibilitySettings

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=UTC)
CREATOR_ID = UserId(uuid.uuid4())


def _payment(
    amount: int,
    *,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    created_at: datetime = NOW,
    payer_name: str | None = None,
    payer_email: str | None = None,
) -> PaymentResponse:
    return PaymentResponse(
        id=PaymentId(uuid.uuid4()),
        creator_id=CREATOR_ID,
        amount=amount,
        currency="PLN",
        status=status,
        payer_name=payer_name,
        payer_email=payer_email,
        payment_type="stripe",
        created_at=created_at,
    )


class TestComputeStats:
    """Totals, counts and donor counts only consider completed payments."""

    def test_pending_and_failed_payments_are_ignored(self) -> None:
        payments = [
            _payment(5000, payer_email="jan@example.com"),
            _payment(2500, payer_email="jan@example.com"),
            _payment(9900, status=PaymentStatus.PENDING, payer_email="ola@example.com"),
            _payment(1000, status=PaymentStatus.FAILED, payer_name="Ola"),
        ]

        stats = donation_stats.compute_stats(payments, NOW)

        assert stats.total_amount == 7500
        assert stats.donation_count == 2
        assert stats.unique_donors == 1

    def test_anonymous_payments_each_count_as_a_donor(self) -> None:
        payments = [_payment(1000), _payment(2000), _payment(3000, payer_name="Jan")]

        stats = donation_stats.compute_stats(payments, NOW)

        assert stats.unique_donors == 3
        assert stats.anonymous == AnonymousStats(count=2, amount=3000)

    def test_no_payments(self) -> None:
        stats = donation_stats.compute_stats([], NOW)

        assert stats.total_amount == 0
        assert stats.donation_count == 0
        assert stats.month_over_month.change_percent is None


class TestMonthOverMonth:
    def test_change_against_previous_month(self) -> None:
        payments = [
            _payment(3000, created_at=datetime(2025, 3, 2, tzinfo=UTC)),
            _payment(2000, created_at=datetime(2025, 2, 27, tzinfo=UTC)),
            _payment(7000, created_at=datetime(2025, 1, 5, tzinfo=UTC)),
        ]

        result = donation_stats.month_over_month(payments, NOW)

        assert result.current_month_amount == 3000
        assert result.previous_month_amount == 2000
        assert result.change_percent == 50.0

    def test_no_previous_month_has_no_percentage(self) -> None:
        result = donation_stats.month_over_month([_payment(3000)], NOW)

        assert result.previous_month_amount == 0
        assert result.change_percent is None

    def test_january_compares_with_december(self) -> None:
        now = datetime(2025, 1, 10, tzinfo=UTC)
        payments = [_payment(1000, created_at=datetime(2024, 12, 31, 23, 0, tzinfo=UTC))]

        result = donation_stats.month_over_month(payments, now)

        assert result.previous_month_amount == 1000


class TestRanges:
    @pytest.mark.parametrize(
        ("date_range", "expected"),
        [
            (DonationRange.ALL, (None, None)),
            (DonationRange.TODAY, (datetime(2025, 3, 15, tzinfo=UTC), None)),
            (DonationRange.LAST_7_DAYS, (NOW - timedelta(days=7), None)),
            (DonationRange.THIS_MONTH, (datetime(2025, 3, 1, tzinfo=UTC), None)),
            (DonationRange.LAST_MONTH, (datetime(2025, 2, 1, tzinfo=UTC), datetime(2025, 3, 1, tzinfo=UTC))),
            (DonationRange.THIS_YEAR, (datetime(2025, 1, 1, tzinfo=UTC), None)),
        ],
    )
    def test_range_bounds(self, date_range: DonationRange, expected: tuple[datetime | None, datetime | None]) -> None:
        assert donation_stats.range_bounds(date_range, NOW) == expected

    def test_last_month_excludes_this_month(self) -> None:
        february = _payment(2000, created_at=datetime(2025, 2, 10, tzinfo=UTC))
        march = _payment(3000, created_at=datetime(2025, 3, 1, tzinfo=UTC))

        assert donation_stats.filter_by_range([february, march], DonationRange.LAST_MONTH, NOW) == [february]

    def test_last_30_days_amount(self) -> None:
        payments = [
            _payment(1000, created_at=NOW - timedelta(days=29)),
            _payment(5000, created_at=NOW - timedelta(days=31)),
            _payment(7000, created_at=NOW - timedelta(days=1), status=PaymentStatus.PENDING),
        ]

        assert donation_stats.last_30_days_amount(payments, NOW) == 1000


class TestTopDonors:
    """Local ranking used when the database ranking is unavailable."""

    def test_groups_by_email_then_name(self) -> None:
        payments = [
            _payment(1000, payer_email="jan@example.com", payer_name="Jan"),
            _payment(4000, payer_email="jan@example.com", payer_name="Janek"),
            _payment(3000, payer_name="Ola"),
            _payment(500, payer_name="Ola", status=PaymentStatus.PENDING),
        ]

        ranking = donation_stats.rank_top_donors(payments)

        assert [(t.donor_key, t.total_amount, t.donation_count) for t in ranking] == [
            ("jan@example.com", 5000, 2),
            ("Ola", 3000, 1),
        ]
        assert ranking[0].payer_name == "Janek"

    def test_ties_are_broken_by_donor_key(self) -> None:
        payments = [_payment(5000, payer_email="zofia@example.com"), _payment(5000, payer_email="adam@example.com")]

        ranking = donation_stats.rank_top_donors(payments)

        assert [t.donor_key for t in ranking] == ["adam@example.com", "zofia@example.com"]

    def test_visibility_hides_list(self) -> None:
        ranking = donation_stats.rank_top_donors([_payment(1000, payer_name="Jan")])

        result = donation_stats.apply_visibility(ranking, DonorVisibilitySettings(show_top_donors=False))

        assert result.visible is False
        assert result.donors == []

    def test_visibility_limits_count_and_splits_anonymous(self) -> None:
        payments = [
            _payment(5000, payer_name="Jan"),
            _payment(4000, payer_name="Ola"),
            _payment(3000, payer_name="Piotr"),
            _payment(2000, payer_name=donation_stats.ANONYMOUS_DISPLAY_NAME),
            _payment(6000),
        ]
        ranking = donation_stats.rank_top_donors(payments)

        result = donation_stats.apply_visibility(ranking, DonorVisibilitySettings(top_donors_count=2))

        assert [t.donor_key for t in result.donors] == ["Jan", "Ola"]
        assert result.anonymous == AnonymousStats(count=2, amount=8000)

    def test_visibility_can_hide_anonymous_summary(self) -> None:
        ranking = donation_stats.rank_top_donors([_payment(6000), _payment(1000, payer_name="Jan")])

        result = donation_stats.apply_visibility(ranking, DonorVisibilitySettings(hide_anonymous=True))

        assert [t.donor_key for t in result.donors] == ["Jan"]
        assert result.anonymous is None
