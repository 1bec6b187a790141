"""Reductions over a creator's payment rows.

Everything here is pure: callers load the rows (see ``CreatorSession``) and pass them in. The donor
identity rule and the ranking order are shared with ``PaymentDAO.rank_donors`` so the database ranking and
the local fallback agree for the same rows.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from tipjar_api.schemas.dashboard import AnonymousStats, DonationRange, DonationStats, MonthOverMonth, TopDonors
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.schemas.payment import DonorTotal, PaymentResponse, donor_key
from tipjar_db.schemas.profile import DonorVisibilitySettings

# Display name the donation form stores for donors who chose to stay anonymous
ANONYMOUS_DISPLAY_NAME = "Anonim"


def payment_donor_key(payment: PaymentResponse) -> str:
    return donor_key(payment.payer_email or None, payment.payer_name or None, payment.id)


def completed(payments: Iterable[PaymentResponse]) -> list[PaymentResponse]:
    return [p for p in payments if p.status == PaymentStatus.COMPLETED]


def total_amount(payments: Iterable[PaymentResponse]) -> int:
    return sum(p.amount for p in completed(payments))


def unique_donors(payments: Iterable[PaymentResponse]) -> int:
    return len({payment_donor_key(p) for p in completed(payments)})


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month_start(month_start: datetime) -> datetime:
    return _month_start(month_start - timedelta(days=1))


def range_bounds(date_range: DonationRange, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """Inclusive start and exclusive end for a dashboard range. ``None`` leaves that side open."""
    now = now or datetime.now(UTC)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    this_month = _month_start(now)

    match date_range:
        case DonationRange.ALL:
            return None, None
        case DonationRange.TODAY:
            return today, None
        case DonationRange.LAST_7_DAYS:
            return now - timedelta(days=7), None
        case DonationRange.LAST_30_DAYS:
            return now - timedelta(days=30), None
        case DonationRange.THIS_MONTH:
            return this_month, None
        case DonationRange.LAST_MONTH:
            return _previous_month_start(this_month), this_month
        case DonationRange.THIS_YEAR:
            return this_month.replace(month=1), None


def _in_window(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and moment < start:
        return False
    return not (end is not None and moment >= end)


def filter_by_range(payments: Iterable[PaymentResponse], date_range: DonationRange, now: datetime | None = None) -> list[PaymentResponse]:
    start, end = range_bounds(date_range, now)
    return [p for p in payments if _in_window(p.created_at, start, end)]


def month_over_month(payments: Iterable[PaymentResponse], now: datetime | None = None) -> MonthOverMonth:
    now = now or datetime.now(UTC)
    current_start = _month_start(now)
    previous_start = _previous_month_start(current_start)

    current = 0
    previous = 0
    for payment in completed(payments):
        if payment.created_at >= current_start:
            current += payment.amount
        elif payment.created_at >= previous_start:
            previous += payment.amount

    change = round((current - previous) * 100 / previous, 1) if previous else None
    return MonthOverMonth(current_month_amount=current, previous_month_amount=previous, change_percent=change)


def last_30_days_amount(payments: Iterable[PaymentResponse], now: datetime | None = None) -> int:
    since = (now or datetime.now(UTC)) - timedelta(days=30)
    return sum(p.amount for p in completed(payments) if p.created_at >= since)


def anonymous_stats(payments: Iterable[PaymentResponse]) -> AnonymousStats:
    """Completed payments that carry neither a name nor an email."""
    anonymous = [p for p in completed(payments) if not p.payer_name and not p.payer_email]
    return AnonymousStats(count=len(anonymous), amount=sum(p.amount for p in anonymous))


def compute_stats(payments: list[PaymentResponse], now: datetime | None = None) -> DonationStats:
    now = now or datetime.now(UTC)
    done = completed(payments)
    return DonationStats(
        total_amount=total_amount(done),
        donation_count=len(done),
        unique_donors=unique_donors(done),
        last_30_days_amount=last_30_days_amount(done, now),
        month_over_month=month_over_month(done, now),
        anonymous=anonymous_stats(done),
    )


def sort_donor_totals(totals: Iterable[DonorTotal]) -> list[DonorTotal]:
    """Total descending, then donor key ascending."""
    return sorted(totals, key=lambda t: (-t.total_amount, t.donor_key))


def _max_or_none(current: str | None, candidate: str | None) -> str | None:
    if not candidate:
        return current
    return candidate if current is None or candidate > current else current


def rank_top_donors(payments: Iterable[PaymentResponse]) -> list[DonorTotal]:
    """Group completed payments by donor key, summing amounts and counting donations."""
    grouped: dict[str, DonorTotal] = {}
    for payment in completed(payments):
        key = payment_donor_key(payment)
        entry = grouped.get(key)
        if entry is None:
            entry = grouped[key] = DonorTotal(donor_key=key, total_amount=0, donation_count=0)
        entry.total_amount += payment.amount
        entry.donation_count += 1
        entry.payer_name = _max_or_none(entry.payer_name, payment.payer_name)
        entry.payer_email = _max_or_none(entry.payer_email, payment.payer_email)
    return sort_donor_totals(grouped.values())


def is_anonymous_donor(total: DonorTotal) -> bool:
    return total.is_anonymous or (not total.payer_email and total.payer_name == ANONYMOUS_DISPLAY_NAME)


def split_anonymous(totals: Iterable[DonorTotal]) -> tuple[list[DonorTotal], AnonymousStats]:
    named: list[DonorTotal] = []
    anonymous = AnonymousStats()
    for total in totals:
        if is_anonymous_donor(total):
            anonymous.count += total.donation_count
            anonymous.amount += total.total_amount
        else:
            named.append(total)
    return named, anonymous


def apply_visibility(ranking: list[DonorTotal], settings: DonorVisibilitySettings) -> TopDonors:
    """Shape a ranking for public display according to the creator's visibility settings."""
    if not settings.show_top_donors:
        return TopDonors(visible=False, settings=settings)

    named, anonymous = split_anonymous(ranking)
    return TopDonors(
        visible=True,
        donors=named[: settings.top_donors_count],
        anonymous=None if settings.hide_anonymous else anonymous,
        settings=settings,
    )
