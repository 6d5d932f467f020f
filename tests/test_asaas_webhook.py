from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cardapio.core.database import Base, get_db
from cardapio.core.errors import MalformedEvent, UnauthorizedError, WebhookNotConfigured
from cardapio.models.order import Order
from cardapio.models.payment import OrderPayment, SubscriptionPayment
from cardapio.models.restaurant import Restaurant
from cardapio.routers.payments_webhook import router as payments_webhook_router
from cardapio.services import payment_webhook
from cardapio.services.payment_webhook import (
    NoMatch,
    OrderMatch,
    SubscriptionMatch,
    authenticate,
    find_matches,
    map_provider_status,
    parse_event,
)
from tests.fixtures_data import ASAAS_API_KEY, CONFIRMED_EVENT, RESTAURANT

HEADERS = {"asaas-access-token": ASAAS_API_KEY}


def _build_client(monkeypatch, *, order_status="pending", with_subscription=False):
    monkeypatch.setattr(payment_webhook, "ASAAS_API_KEY", ASAAS_API_KEY)
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(Restaurant(**RESTAURANT))
    db.add(
        Order(
            id="order-1",
            restaurant_id=1,
            customer_name="Ana",
            items_json=[],
            subtotal=Decimal("50"),
            total_amount=Decimal("50"),
            status=order_status,
        )
    )
    db.add(
        OrderPayment(
            order_id="order-1",
            asaas_payment_id="pay_1",
            amount=Decimal("50"),
            payment_method="pix",
            status="pending",
        )
    )
    if with_subscription:
        db.add(
            SubscriptionPayment(
                restaurant_id=1,
                subscription_plan_id="plan-pro",
                asaas_payment_id="pay_1",
                amount=Decimal("99.90"),
                payment_method="pix",
                status="pending",
            )
        )
    db.commit()

    app = FastAPI()
    app.include_router(payments_webhook_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def _state(db):
    db.expire_all()
    order = db.query(Order).filter(Order.id == "order-1").one()
    payment = db.query(OrderPayment).filter(OrderPayment.asaas_payment_id == "pay_1").one()
    return order, payment


def test_confirmed_event_marks_payment_and_order(monkeypatch):
    client, db = _build_client(monkeypatch)

    response = client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["success"] is True
    order, payment = _state(db)
    assert payment.status == "confirmed"
    assert payment.paid_at is not None
    assert order.status == "confirmed"


def test_replayed_event_converges_to_same_state(monkeypatch):
    client, db = _build_client(monkeypatch)

    client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)
    _, payment = _state(db)
    first_paid_at = payment.paid_at

    response = client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)

    assert response.status_code == 200
    order, payment = _state(db)
    assert payment.status == "confirmed"
    assert payment.paid_at == first_paid_at
    assert order.status == "confirmed"


@pytest.mark.parametrize("headers", [{}, {"asaas-access-token": "wrong"}])
def test_missing_or_wrong_token_is_rejected_without_reading(monkeypatch, headers):
    client, db = _build_client(monkeypatch)

    with patch("cardapio.routers.payments_webhook.handle_asaas_webhook") as handler:
        response = client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    handler.assert_not_called()
    _, payment = _state(db)
    assert payment.status == "pending"


def test_unconfigured_api_key_answers_500(monkeypatch):
    client, _ = _build_client(monkeypatch)
    monkeypatch.setattr(payment_webhook, "ASAAS_API_KEY", "")

    response = client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)

    assert response.status_code == 500
    assert response.json() == {"error": "ASAAS_API_KEY not configured"}


@pytest.mark.parametrize(
    "body",
    [
        {"event": "PAYMENT_CONFIRMED"},
        {"payment": {"status": "CONFIRMED"}},
        {"payment": {"id": "pay_1"}},
        ["not", "an", "object"],
    ],
)
def test_malformed_body_answers_400(monkeypatch, body):
    client, db = _build_client(monkeypatch)

    response = client.post("/api/webhooks/asaas", json=body, headers=HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}
    _, payment = _state(db)
    assert payment.status == "pending"


def test_invalid_json_answers_400(monkeypatch):
    client, _ = _build_client(monkeypatch)

    response = client.post(
        "/api/webhooks/asaas",
        content=b"{not json",
        headers={**HEADERS, "content-type": "application/json"},
    )

    assert response.status_code == 400


def test_unmatched_payment_succeeds_without_mutation(monkeypatch):
    client, db = _build_client(monkeypatch)
    event = {"event": "PAYMENT_CONFIRMED", "payment": {"id": "pay_unknown", "status": "CONFIRMED"}}

    response = client.post("/api/webhooks/asaas", json=event, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["matched"] is False
    order, payment = _state(db)
    assert payment.status == "pending"
    assert payment.paid_at is None
    assert order.status == "pending"


def test_same_id_updates_order_and_subscription_records(monkeypatch):
    client, db = _build_client(monkeypatch, with_subscription=True)

    response = client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)

    assert response.status_code == 200
    db.expire_all()
    subscription = db.query(SubscriptionPayment).filter(SubscriptionPayment.asaas_payment_id == "pay_1").one()
    assert subscription.status == "confirmed"
    assert subscription.paid_at is not None
    _, payment = _state(db)
    assert payment.status == "confirmed"


def test_cascade_leaves_advanced_orders_untouched(monkeypatch):
    client, db = _build_client(monkeypatch, order_status="preparing")

    client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)

    order, payment = _state(db)
    assert payment.status == "confirmed"
    assert order.status == "preparing"


def test_refund_keeps_original_paid_at(monkeypatch):
    client, db = _build_client(monkeypatch)
    client.post("/api/webhooks/asaas", json=CONFIRMED_EVENT, headers=HEADERS)
    _, payment = _state(db)
    paid_at = payment.paid_at

    refund = {"event": "PAYMENT_REFUNDED", "payment": {"id": "pay_1", "status": "REFUNDED"}}
    client.post("/api/webhooks/asaas", json=refund, headers=HEADERS)

    _, payment = _state(db)
    assert payment.status == "refunded"
    assert payment.paid_at == paid_at


def test_pending_status_does_not_set_paid_at(monkeypatch):
    client, db = _build_client(monkeypatch)
    overdue = {"event": "PAYMENT_OVERDUE", "payment": {"id": "pay_1", "status": "OVERDUE"}}

    client.post("/api/webhooks/asaas", json=overdue, headers=HEADERS)

    order, payment = _state(db)
    assert payment.status == "overdue"
    assert payment.paid_at is None
    assert order.status == "pending"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("PENDING", "pending"),
        ("RECEIVED", "received"),
        ("CONFIRMED", "confirmed"),
        ("OVERDUE", "overdue"),
        ("REFUNDED", "refunded"),
        ("RECEIVED_IN_CASH", "received"),
        ("REFUND_REQUESTED", "refund_requested"),
    ],
)
def test_provider_status_mapping(raw, expected):
    assert map_provider_status(raw) == expected


def test_unknown_provider_status_is_logged_and_defaults_to_pending(caplog):
    with caplog.at_level("WARNING", logger="cardapio.services.payment_webhook"):
        assert map_provider_status("CHARGEBACK_DISPUTE") == "pending"

    assert "CHARGEBACK_DISPUTE" in caplog.text


def test_authenticate_rules():
    authenticate("secret", api_key="secret")
    with pytest.raises(UnauthorizedError):
        authenticate(None, api_key="secret")
    with pytest.raises(UnauthorizedError):
        authenticate("secreT", api_key="secret")
    with pytest.raises(WebhookNotConfigured):
        authenticate("secret", api_key="")


def test_parse_event_requires_payment_id_and_status():
    event = parse_event(CONFIRMED_EVENT)
    assert event.payment_id == "pay_1"
    assert event.provider_status == "CONFIRMED"
    assert event.event == "PAYMENT_CONFIRMED"

    with pytest.raises(MalformedEvent):
        parse_event({"payment": {"id": "", "status": "CONFIRMED"}})


def test_find_matches_returns_tagged_results(monkeypatch):
    _, db = _build_client(monkeypatch, with_subscription=True)

    matches = find_matches(db, "pay_1")
    assert [type(match) for match in matches] == [OrderMatch, SubscriptionMatch]
    assert matches[0].order.id == "order-1"

    assert [type(match) for match in find_matches(db, "nope")] == [NoMatch]


def test_reconcile_uses_given_clock(monkeypatch):
    _, db = _build_client(monkeypatch)
    fixed_now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    result = payment_webhook.handle_asaas_webhook(
        db,
        token=ASAAS_API_KEY,
        payload=CONFIRMED_EVENT,
        now=fixed_now,
    )

    assert result.changed is True
    _, payment = _state(db)
    assert payment.paid_at.replace(tzinfo=timezone.utc) == fixed_now
