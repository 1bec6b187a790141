"""Available balance, payout requests and the creator's bank account."""

from __future__ import annotations

import re

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.schemas.payout import AvailableBalance, PayoutRequest
from tipjar_api.services.creator_session import CreatorSession
from tipjar_common.core.app_error import Errors
from tipjar_common.core.config_service import ConfigService
from tipjar_common.ids import UserId
from tipjar_common.utils.money import InvalidAmountError, format_minor, parse_major_amount
from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.payout import BankAccountDAO, PayoutDAO
from tipjar_db.crud.verification import VerificationDAO
from tipjar_db.models.enums import KycStatus
from tipjar_db.schemas.payout import BankAccountData, BankAccountResponse, PayoutResponse, PayoutWithBankAccount

logger = get_logger()

_ACCOUNT_NUMBER_PATTERN = re.compile(r"^PL\d{26}$")
_SWIFT_PATTERN = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")


def compute_available_balance(cached_balance: int, total_donations: int, completed_payouts: int, pending_payouts: int) -> int:
    """Withdrawable amount in minor units. Pending payouts are reserved; never negative."""
    from_cache = cached_balance - pending_payouts
    from_totals = total_donations - completed_payouts - pending_payouts
    return max(0, min(from_cache, from_totals))


def normalize_bank_account(data: BankAccountData) -> BankAccountData:
    return BankAccountData(
        account_number=re.sub(r"\s+", "", data.account_number).upper(),
        bank_name=data.bank_name.strip(),
        swift_code=(data.swift_code or "").strip().upper() or None,
    )


def validate_bank_account(data: BankAccountData) -> BankAccountData:
    """Normalize and validate a Polish bank account. Returns the normalized data."""
    data = normalize_bank_account(data)
    errors: dict[str, str] = {}
    if not _ACCOUNT_NUMBER_PATTERN.match(data.account_number):
        errors["accountNumber"] = "Account number must be PL followed by 26 digits"
    if len(data.bank_name) < 2:
        errors["bankName"] = "Bank name must be at least 2 characters"
    if data.swift_code and not _SWIFT_PATTERN.match(data.swift_code):
        errors["swiftCode"] = "Invalid SWIFT/BIC code"
    if errors:
        raise Errors.BankAccount.INVALID.create(details={"fields": errors})
    return data


class PayoutService:
    def __init__(
        self,
        payout_dao: PayoutDAO,
        bank_account_dao: BankAccountDAO,
        verification_dao: VerificationDAO,
        config: ConfigService,
    ) -> None:
        self.payout_dao = payout_dao
        self.bank_account_dao = bank_account_dao
        self.verification_dao = verification_dao
        self.config = config

    @property
    def min_payout_amount(self) -> int:
        return self.config.donations.min_payout_amount

    async def balance(self, session: CreatorSession) -> AvailableBalance:
        profile = await session.profile()
        totals = await session.payout_totals()
        available = compute_available_balance(profile.available_balance, profile.total_donations, totals.completed, totals.pending)
        return AvailableBalance(
            available_balance=available,
            total_donations=profile.total_donations,
            cached_balance=profile.available_balance,
            completed_payouts=totals.completed,
            pending_payouts=totals.pending,
            min_payout_amount=self.min_payout_amount,
            can_request_payout=available >= self.min_payout_amount,
        )

    async def request_payout(self, session: CreatorSession, request: PayoutRequest) -> PayoutResponse:
        """Create a pending payout. The balance check is not transactional with the insert."""
        try:
            amount = parse_major_amount(request.amount)
        except InvalidAmountError as e:
            raise Errors.Payout.INVALID_AMOUNT.create(message=str(e), details={"amount": request.amount}) from e

        if amount <= 0:
            raise Errors.Payout.INVALID_AMOUNT.create(message="Amount must be greater than zero", details={"amount": request.amount})
        if amount < self.min_payout_amount:
            raise Errors.Payout.BELOW_MINIMUM.create(
                message=f"Minimum payout amount is {format_minor(self.min_payout_amount)}",
                details={"amount": amount, "min_payout_amount": self.min_payout_amount},
            )

        balance = await self.balance(session)
        if amount > balance.available_balance:
            raise Errors.Payout.INSUFFICIENT_FUNDS.create(details={"amount": amount, "available_balance": balance.available_balance})

        db = session.db
        if request.bank_account_id is not None:
            account = await self.bank_account_dao.get(db, session.user_id, request.bank_account_id)
        else:
            account = await self.bank_account_dao.get_current(db, session.user_id)
        if account is None:
            raise Errors.Payout.BANK_ACCOUNT_REQUIRED.create()

        verification = await self.verification_dao.get(db, session.user_id)
        if verification is None or verification.kyc_status != KycStatus.VERIFIED:
            raise Errors.Payout.KYC_REQUIRED.create(details={"kyc_status": verification.kyc_status if verification else KycStatus.NOT_STARTED})

        payout = await self.payout_dao.create(db, user_id=session.user_id, bank_account_id=account.id, amount=amount)
        session.invalidate()
        logger.info("Payout requested", payout_id=payout.id, user_id=session.user_id, amount=amount, bank_account_id=account.id)
        return payout

    async def history(self, db: AsyncSession, user_id: UserId) -> list[PayoutWithBankAccount]:
        return await self.payout_dao.list_with_bank_accounts(db, user_id)

    async def get_bank_account(self, db: AsyncSession, user_id: UserId) -> BankAccountResponse:
        account = await self.bank_account_dao.get_current(db, user_id)
        if account is None:
            raise Errors.BankAccount.NOT_FOUND.create()
        return account

    async def save_bank_account(self, db: AsyncSession, user_id: UserId, data: BankAccountData) -> BankAccountResponse:
        data = validate_bank_account(data)
        account = await self.bank_account_dao.save(db, user_id, data=data)
        logger.info("Bank account saved", user_id=user_id, bank_account_id=account.id)
        return account
