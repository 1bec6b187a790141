"""Bank account, payout, goal and verification DAO tests."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_common.ids import BankAccountId, GoalId
from tipjar_common.utils.utils import get_now
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.payout import BankAccountDAO, PayoutDAO
from tipjar_db.crud.verification import PersonalDataDAO, VerificationDAO
from tipjar_db.models.enums import KycStatus, PayoutStatus
from tipjar_db.models.payout import Payout
from tipjar_db.schemas.goal import GoalCreate, GoalUpdate
from tipjar_db.schemas.payout import BankAccountData
from tipjar_db.schemas.profile import ProfileResponse
from tipjar_db.schemas.verification import PersonalDataFields

ACCOUNT_NUMBER = "PL61109010140000071219812874"


class TestBankAccountDAO:
    async def test_save_inserts_then_updates_in_place(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = BankAccountDAO()

        first = await dao.save(db, creator.id, data=BankAccountData(account_number=ACCOUNT_NUMBER, bank_name="mBank"))
        second = await dao.save(db, creator.id, data=BankAccountData(account_number=ACCOUNT_NUMBER, bank_name="PKO BP", swift_code="BPKOPLPW"))

        assert second.id == first.id
        current = await dao.get_current(db, creator.id)
        assert current is not None
        assert current.bank_name == "PKO BP"
        assert current.swift_code == "BPKOPLPW"

    async def test_get_is_scoped_to_owner(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = BankAccountDAO()
        account = await dao.save(db, creator.id, data=BankAccountData(account_number=ACCOUNT_NUMBER, bank_name="mBank"))

        assert await dao.get(db, creator.id, account.id) is not None
        assert await dao.get(db, creator.id, BankAccountId(uuid.uuid4())) is None


class TestPayoutDAO:
    async def test_totals_by_status(self, db: AsyncSession, creator: ProfileResponse) -> None:
        account = await BankAccountDAO().save(db, creator.id, data=BankAccountData(account_number=ACCOUNT_NUMBER, bank_name="mBank"))
        dao = PayoutDAO()
        await dao.create(db, user_id=creator.id, bank_account_id=account.id, amount=1500)
        await dao.create(db, user_id=creator.id, bank_account_id=account.id, amount=500)
        db.add(Payout(user_id=creator.id, bank_account_id=account.id, amount=3000, status=PayoutStatus.COMPLETED))
        db.add(Payout(user_id=creator.id, bank_account_id=account.id, amount=7000, status=PayoutStatus.REJECTED))
        await db.flush()

        totals = await dao.totals(db, creator.id)

        assert totals.pending == 2000
        assert totals.completed == 3000

    async def test_totals_without_payouts(self, db: AsyncSession, creator: ProfileResponse) -> None:
        totals = await PayoutDAO().totals(db, creator.id)

        assert (totals.completed, totals.pending) == (0, 0)

    async def test_history_includes_bank_account(self, db: AsyncSession, creator: ProfileResponse) -> None:
        account = await BankAccountDAO().save(db, creator.id, data=BankAccountData(account_number=ACCOUNT_NUMBER, bank_name="mBank"))
        payout = await PayoutDAO().create(db, user_id=creator.id, bank_account_id=account.id, amount=1500)

        history = await PayoutDAO().list_with_bank_accounts(db, creator.id)

        assert [entry.id for entry in history] == [payout.id]
        assert history[0].status == PayoutStatus.PENDING
        assert history[0].account_number == ACCOUNT_NUMBER
        assert history[0].bank_name == "mBank"


class TestGoalDAO:
    async def test_progress_deactivates_goal_at_target(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = GoalDAO()
        goal = await dao.create(db, creator.id, obj_in=GoalCreate(title="Nowy tablet", target_amount=10000))

        halfway = await dao.add_progress(db, goal.id, amount=5000)
        reached = await dao.add_progress(db, goal.id, amount=5000)

        assert halfway is not None and halfway.active is True
        assert reached is not None
        assert reached.current_amount == 10000
        assert reached.active is False
        assert await dao.get_active(db, creator.id) is None

    async def test_update_and_delete_are_scoped_to_owner(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = GoalDAO()
        goal = await dao.create(db, creator.id, obj_in=GoalCreate(title="Mikrofon", target_amount=50000))

        updated = await dao.update(db, creator.id, goal.id, obj_in=GoalUpdate(title="Lepszy mikrofon"))

        assert updated is not None
        assert updated.title == "Lepszy mikrofon"
        assert updated.target_amount == 50000
        assert await dao.update(db, creator.id, GoalId(uuid.uuid4()), obj_in=GoalUpdate(title="x")) is None
        assert await dao.delete(db, creator.id, goal.id) is True
        assert await dao.list_for_user(db, creator.id) == []


class TestVerificationDAO:
    async def test_rows_are_created_on_first_write(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = VerificationDAO()
        assert await dao.get(db, creator.id) is None

        verification = await dao.mark_phone_verified(db, creator.id, verified_at=get_now())
        assert verification.phone_verified is True
        assert verification.kyc_status == KycStatus.NOT_STARTED

        verification = await dao.set_kyc_status(db, creator.id, status=KycStatus.VERIFIED, reference="kyc-1", completed_at=get_now())
        assert verification.kyc_status == KycStatus.VERIFIED
        assert verification.kyc_reference == "kyc-1"
        assert verification.phone_verified is True

    async def test_personal_data_upsert(self, db: AsyncSession, creator: ProfileResponse) -> None:
        dao = PersonalDataDAO()
        data = PersonalDataFields(
            first_name="Magda",
            last_name="Nowak",
            address="ul. Długa 1",
            city="Kraków",
            postal_code="30-001",
            country="Polska",
            phone_number="+48 600 100 200",
        )

        await dao.upsert(db, creator.id, data=data)
        saved = await dao.upsert(db, creator.id, data=data.model_copy(update={"city": "Gdańsk"}))

        assert saved.city == "Gdańsk"
        assert saved.first_name == "Magda"
        assert (await dao.get(db, creator.id)) == saved
