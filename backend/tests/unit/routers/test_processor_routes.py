"""HTTP-level tests for the browser-facing /api routes and the Stripe webhook endpoint."""

from __future__ import annotations

import hashlib
import hmac
import time
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tipjar_api.dependencies import (
    get_config_service,
    get_db,
    get_payment_confirmation_service,
    get_payment_dao,
    get_stripe_service,
    get_webhook_service,
)
from tipjar_api.routers import router
from tipjar_api.schemas.processor import CheckoutSessionResult
from tipjar_api.services.stripe_service import StripeService
from tipjar_api.services.webhook_service import WebhookService
from tipjar_api.utils.fastapi_utils import install_exception_handlers
from tipjar_common.core.app_error import Errors
from tipjar_common.core.config_service import DonationSection, StripeSection
from tipjar_common.ids import PaymentId, UserId
from tipjar_common.utils.msgspec import encode_json
from tipjar_db.models.enums import PaymentStatus
from tipjar_db.schemas.payment import PaymentResponse

WEBHOOK_SECRET = "whsec_router_test"
WEBHOOK_URL = "/api/stripe-webhook"


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _build_db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def fake_db() -> MagicMock:
    return _build_db()


@pytest.fixture
def app(fake_db: MagicMock) -> Iterator[FastAPI]:
    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(router)

    async def override_db() -> AsyncGenerator[MagicMock]:
        yield fake_db

    config = MagicMock()
    config.stripe = StripeSection(secret_key="sk_test_router", webhook_secret=WEBHOOK_SECRET)
    webhook_service = WebhookService(StripeService(config), MagicMock(), MagicMock())

    donations_config = MagicMock()
    donations_config.donations = DonationSection()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service
    app.dependency_overrides[get_config_service] = lambda: donations_config
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    # No context manager: the lifespan (database setup) is not needed here
    return TestClient(app)


class TestStripeWebhook:
    def test_valid_event_is_acknowledged(self, client: TestClient, fake_db: MagicMock) -> None:
        payload = encode_json({"id": "evt_1", "object": "event", "type": "customer.created", "data": {"object": {"id": "cus_1"}}})

        response = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": _sign(payload)})

        assert response.status_code == 200
        assert response.json() == {"received": True}
        fake_db.commit.assert_awaited_once()

    def test_missing_signature(self, client: TestClient, fake_db: MagicMock) -> None:
        response = client.post(WEBHOOK_URL, content=b'{"id": "evt_1", "type": "checkout.session.completed"}')

        assert response.status_code == 400
        assert response.json() == {"error": "Webhook signature verification failed"}
        fake_db.commit.assert_not_awaited()

    def test_bad_signature(self, client: TestClient) -> None:
        payload = b'{"id": "evt_1", "type": "checkout.session.completed"}'

        response = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": _sign(payload, secret="whsec_other")})

        assert response.status_code == 400
        assert response.json() == {"error": "Webhook signature verification failed"}

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_other_methods_are_not_allowed(self, client: TestClient, method: str) -> None:
        response = client.request(method, WEBHOOK_URL)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        assert response.json() == {"error": "Method not allowed"}

    def test_unexpected_error_gets_generic_body(self, app: FastAPI, client: TestClient) -> None:
        webhook_service = MagicMock()
        webhook_service.handle = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_webhook_service] = lambda: webhook_service
        payload = b'{"id": "evt_1", "type": "checkout.session.completed"}'

        response = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": _sign(payload)})

        assert response.status_code == 500
        assert response.json() == {"error": "Webhook handler failed"}


class TestPaymentInfo:
    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/payment-info", json={"paymentId": "5b1f0c36-2f3e-4f7e-9d55-0f0b6f2c9a10"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_declined_payment_reports_processor_message(self, app: FastAPI, client: TestClient) -> None:
        confirmation_service = MagicMock()
        confirmation_service.confirm = AsyncMock(side_effect=Errors.Processor.CONFIRMATION_FAILED.create(message="Your card was declined."))
        app.dependency_overrides[get_payment_confirmation_service] = lambda: confirmation_service

        response = client.post(
            "/api/payment-info",
            json={"paymentId": "5b1f0c36-2f3e-4f7e-9d55-0f0b6f2c9a10", "stripePaymentId": "pi_1"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Your card was declined."}


def test_check_session_status_requires_session_id(client: TestClient) -> None:
    response = client.get("/api/check-session-status")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing session_id parameter"}


def test_health(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["isTesting"] is True
    assert body["databaseType"] == "sqlite"


PAYMENT_ID = PaymentId(uuid.uuid4())


def _payment(status: PaymentStatus = PaymentStatus.PENDING, amount: int = 1_000_000) -> PaymentResponse:
    return PaymentResponse(
        id=PAYMENT_ID,
        creator_id=UserId(uuid.uuid4()),
        amount=amount,
        currency="PLN",
        status=status,
        payment_type="stripe",
        created_at=datetime.now(UTC),
    )


@pytest.fixture
def stripe_service(app: FastAPI) -> MagicMock:
    service = MagicMock()
    service.create_payment_intent = AsyncMock()
    service.create_checkout_session = AsyncMock(return_value=CheckoutSessionResult(id="cs_1", url="https://checkout.stripe.com/c/cs_1"))
    app.dependency_overrides[get_stripe_service] = lambda: service
    return service


def _override_payment(app: FastAPI, payment: PaymentResponse | None) -> None:
    payment_dao = MagicMock()
    payment_dao.get = AsyncMock(return_value=payment)
    app.dependency_overrides[get_payment_dao] = lambda: payment_dao


def test_payment_intent_below_minimum_is_refused(client: TestClient, stripe_service: MagicMock) -> None:
    response = client.post("/api/create-payment-intent", json={"amount": 50, "currency": "pln"})

    assert response.status_code == 400
    assert response.json() == {"error": "Minimum amount is 1 PLN"}
    stripe_service.create_payment_intent.assert_not_awaited()


class TestCreateCheckoutSession:
    def test_charges_the_donation_amount(self, app: FastAPI, client: TestClient, stripe_service: MagicMock) -> None:
        _override_payment(app, _payment())

        response = client.post("/api/create-checkout-session", json={"paymentId": str(PAYMENT_ID), "amount": 1_000_000, "currency": "pln"})

        assert response.status_code == 200
        assert response.json() == {"id": "cs_1", "url": "https://checkout.stripe.com/c/cs_1"}
        kwargs = stripe_service.create_checkout_session.await_args.kwargs
        assert kwargs["amount"] == 1_000_000
        assert kwargs["currency"] == "PLN"

    def test_amount_differing_from_donation_is_refused(self, app: FastAPI, client: TestClient, stripe_service: MagicMock) -> None:
        _override_payment(app, _payment())

        response = client.post("/api/create-checkout-session", json={"paymentId": str(PAYMENT_ID), "amount": 200, "currency": "pln"})

        assert response.status_code == 400
        assert response.json() == {"error": "Amount does not match the donation"}
        stripe_service.create_checkout_session.assert_not_awaited()

    def test_completed_donation_is_refused(self, app: FastAPI, client: TestClient, stripe_service: MagicMock) -> None:
        _override_payment(app, _payment(PaymentStatus.COMPLETED))

        response = client.post("/api/create-checkout-session", json={"paymentId": str(PAYMENT_ID), "amount": 1_000_000, "currency": "pln"})

        assert response.status_code == 400
        assert response.json() == {"error": "Payment is no longer pending"}
        stripe_service.create_checkout_session.assert_not_awaited()

    def test_donation_below_minimum_is_refused(self, app: FastAPI, client: TestClient, stripe_service: MagicMock) -> None:
        _override_payment(app, _payment(amount=50))

        response = client.post("/api/create-checkout-session", json={"paymentId": str(PAYMENT_ID), "amount": 50, "currency": "pln"})

        assert response.status_code == 400
        stripe_service.create_checkout_session.assert_not_awaited()
