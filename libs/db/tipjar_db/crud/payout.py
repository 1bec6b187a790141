"""DAOs for bank accounts and payouts."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import BankAccountId, UserId
from tipjar_db.models.enums import PayoutStatus
from tipjar_db.models.payout import BankAccount, Payout
from tipjar_db.schemas.payout import BankAccountData, BankAccountResponse, PayoutResponse, PayoutTotals, PayoutWithBankAccount


class BankAccountDAO:
    async def get_current(self, db: AsyncSession, user_id: UserId) -> BankAccountResponse | None:
        """The most recently created account is the current one."""
        result = await db.execute(
            select(BankAccount).where(BankAccount.user_id == user_id).order_by(BankAccount.created_at.desc()).limit(1)
        )
        account = result.scalar_one_or_none()
        return BankAccountResponse.model_validate(account) if account else None

    async def get(self, db: AsyncSession, user_id: UserId, account_id: BankAccountId) -> BankAccountResponse | None:
        result = await db.execute(select(BankAccount).where(BankAccount.id == account_id, BankAccount.user_id == user_id))
        account = result.scalar_one_or_none()
        return BankAccountResponse.model_validate(account) if account else None

    async def save(self, db: AsyncSession, user_id: UserId, *, data: BankAccountData) -> BankAccountResponse:
        """Update the current account in place, or insert one if the user has none."""
        result = await db.execute(
            select(BankAccount).where(BankAccount.user_id == user_id).order_by(BankAccount.created_at.desc()).limit(1)
        )
        account = result.scalar_one_or_none()
        if account is None:
            account = BankAccount(user_id=user_id)
            db.add(account)
        account.account_number = data.account_number
        account.bank_name = data.bank_name
        account.swift_code = data.swift_code
        await db.flush()
        await db.refresh(account)
        return BankAccountResponse.model_validate(account)


class PayoutDAO:
    async def create(self, db: AsyncSession, *, user_id: UserId, bank_account_id: BankAccountId, amount: int) -> PayoutResponse:
        payout = Payout(user_id=user_id, bank_account_id=bank_account_id, amount=amount, status=PayoutStatus.PENDING)
        db.add(payout)
        await db.flush()
        await db.refresh(payout)
        return PayoutResponse.model_validate(payout)

    async def totals(self, db: AsyncSession, user_id: UserId) -> PayoutTotals:
        result = await db.execute(
            select(Payout.status, func.coalesce(func.sum(Payout.amount), 0))
            .where(Payout.user_id == user_id, Payout.status.in_([PayoutStatus.COMPLETED, PayoutStatus.PENDING]))
            .group_by(Payout.status)
        )
        sums = {PayoutStatus(status): int(total) for status, total in result.all()}
        return PayoutTotals(completed=sums.get(PayoutStatus.COMPLETED, 0), pending=sums.get(PayoutStatus.PENDING, 0))

    async def list_with_bank_accounts(self, db: AsyncSession, user_id: UserId) -> list[PayoutWithBankAccount]:
        """Payout history, newest first, joined with the account it was sent to."""
        result = await db.execute(
            select(Payout, BankAccount.account_number, BankAccount.bank_name)
            .outerjoin(BankAccount, BankAccount.id == Payout.bank_account_id)
            .where(Payout.user_id == user_id)
            .order_by(Payout.created_at.desc())
        )
        history: list[PayoutWithBankAccount] = []
        for payout, account_number, bank_name in result.all():
            entry = PayoutWithBankAccount.model_validate(payout)
            entry.account_number = account_number
            entry.bank_name = bank_name
            history.append(entry)
        return history
