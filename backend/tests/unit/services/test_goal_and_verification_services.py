"""GoalService and VerificationService tests."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tipjar_api.services.goal_service import GoalService
from tipjar_api.services.verification_service import VerificationService
from tipjar_common.core.app_error import AppException, Errors
from tipjar_common.ids import GoalId, UserId
from tipjar_db.crud.goal import GoalDAO
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.crud.verification import VerificationDAO
from tipjar_db.models.enums import KycStatus
from tipjar_db.schemas.goal import GoalCreate, GoalUpdate
from tipjar_db.schemas.profile import ProfileResponse


class TestGoalService:
    async def test_end_date_before_start_is_refused(self, db: AsyncSession, creator: ProfileResponse) -> None:
        goal = GoalCreate(
            title="Mikrofon",
            target_amount=50000,
            start_date=datetime(2025, 5, 1, tzinfo=UTC),
            end_date=datetime(2025, 4, 1, tzinfo=UTC),
        )

        with pytest.raises(AppException) as exc_info:
            await GoalService(GoalDAO()).create(db, creator.id, goal)

        assert Errors.Goal.INVALID.is_(exc_info.value)

    async def test_update_checks_dates_against_stored_values(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = GoalService(GoalDAO())
        goal = await service.create(db, creator.id, GoalCreate(title="Mikrofon", target_amount=50000, start_date=datetime(2025, 5, 1, tzinfo=UTC)))

        with pytest.raises(AppException) as exc_info:
            await service.update(db, creator.id, goal.id, GoalUpdate(end_date=datetime(2025, 4, 1, tzinfo=UTC)))

        assert Errors.Goal.INVALID.is_(exc_info.value)

    async def test_manual_progress(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = GoalService(GoalDAO())
        goal = await service.create(db, creator.id, GoalCreate(title="Mikrofon", target_amount=1000))

        updated = await service.update_progress(db, creator.id, goal.id, 1000)

        assert updated.current_amount == 1000
        assert updated.active is False
        assert updated.progress_percent == 100.0
        assert await service.active_goal(db, creator.id) is None

    async def test_other_creators_goal_is_not_found(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = GoalService(GoalDAO())
        goal = await service.create(db, creator.id, GoalCreate(title="Mikrofon", target_amount=1000))
        stranger = UserId(uuid.uuid4())

        for call in (
            service.update_progress(db, stranger, goal.id, 100),
            service.delete(db, stranger, goal.id),
            service.get(db, creator.id, GoalId(uuid.uuid4())),
        ):
            with pytest.raises(AppException) as exc_info:
                await call
            assert Errors.Goal.NOT_FOUND.is_(exc_info.value)

    async def test_delete(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = GoalService(GoalDAO())
        goal = await service.create(db, creator.id, GoalCreate(title="Mikrofon", target_amount=1000))

        await service.delete(db, creator.id, goal.id)

        assert await service.list_goals(db, creator.id) == []


class TestVerificationService:
    async def test_status_defaults_to_not_started(self, db: AsyncSession, creator: ProfileResponse) -> None:
        status = await VerificationService(VerificationDAO(), ProfileDAO()).get_status(db, creator.id)

        assert status.kyc_status == KycStatus.NOT_STARTED
        assert status.phone_verified is False

    async def test_initialize_then_verify(self, db: AsyncSession, creator: ProfileResponse) -> None:
        service = VerificationService(VerificationDAO(), ProfileDAO())

        started = await service.initialize_kyc(db, creator.id)
        verified = await service.update_kyc_status(db, creator.id, status=KycStatus.VERIFIED, reference="provider-42")
        restarted = await service.initialize_kyc(db, creator.id)

        assert started.kyc_status == KycStatus.PENDING
        assert verified.kyc_status == KycStatus.VERIFIED
        assert verified.kyc_completed_at is not None
        assert restarted.kyc_status == KycStatus.VERIFIED

    async def test_update_for_unknown_user(self, db: AsyncSession) -> None:
        with pytest.raises(AppException) as exc_info:
            await VerificationService(VerificationDAO(), ProfileDAO()).update_kyc_status(db, UserId(uuid.uuid4()), status=KycStatus.REJECTED)

        assert Errors.Profile.NOT_FOUND.is_(exc_info.value)
