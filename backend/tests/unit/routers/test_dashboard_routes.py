"""Dashboard access: authentication and the onboarding gate."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tipjar_api.dependencies import get_current_creator, get_db, get_onboarding_service
from tipjar_api.routers import router
from tipjar_api.utils.fastapi_utils import install_exception_handlers
from tipjar_common.core.app_error import Errors
from tipjar_common.ids import UserId
from tipjar_db.schemas.profile import ProfileResponse


@pytest.fixture
def app() -> Iterator[FastAPI]:
    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(router)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in_app(app: FastAPI) -> FastAPI:
    async def override_db() -> AsyncGenerator[MagicMock]:
        yield MagicMock()

    profile = ProfileResponse(id=UserId(uuid.uuid4()), username="magda")
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_creator] = lambda: profile
    return app


def test_dashboard_requires_authentication(app: FastAPI) -> None:
    response = TestClient(app).get("/api/v1/dashboard/donations")

    assert response.status_code in (401, 403)


def test_dashboard_refused_until_onboarding_completed(signed_in_app: FastAPI) -> None:
    onboarding_service = MagicMock()
    onboarding_service.require_completed = AsyncMock(side_effect=Errors.Onboarding.INCOMPLETE.create(details={"step": "icon_selection"}))
    signed_in_app.dependency_overrides[get_onboarding_service] = lambda: onboarding_service

    response = TestClient(signed_in_app).get("/api/v1/dashboard/donations")

    assert response.status_code == 403
    body = response.json()
    assert body["scope"] == "onboarding"
    assert body["code"] == "incomplete"
    assert body["details"] == {"step": "icon_selection"}


def test_invalid_range_is_rejected(signed_in_app: FastAPI) -> None:
    onboarding_service = MagicMock()
    onboarding_service.require_completed = AsyncMock()
    signed_in_app.dependency_overrides[get_onboarding_service] = lambda: onboarding_service

    response = TestClient(signed_in_app).get("/api/v1/dashboard/donations", params={"range": "fortnight"})

    assert response.status_code == 422
