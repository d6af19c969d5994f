"""Tests for the checkout payment API: intents, coupons, order saving, webhooks."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.main import app
from storefront.models.coupon import DiscountType
from storefront.models.order import OrderStatus, PaymentMethod
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.coupon import CouponCreate
from storefront.services.payment_gateway import (
    PaymentGatewayBase,
    PaymentIntent,
    StripeGateway,
    get_payment_gateway,
)
from tests.conftest import WEBHOOK_SECRET, sign_stripe_payload


@pytest.fixture
def gateway():
    gw = MagicMock(spec=PaymentGatewayBase)
    gw.create_payment_intent.return_value = PaymentIntent(
        id="pi_new",
        status="requires_payment_method",
        amount=0,
        currency="usd",
        client_secret="pi_new_secret",
    )
    gw.retrieve_payment_intent.return_value = PaymentIntent(
        id="pi_paid", status="succeeded", amount=28000, currency="usd"
    )
    return gw


@pytest.fixture
def client(gateway):
    """Create test client with the payment gateway replaced by a mock."""
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def webhook_client():
    """Test client verifying webhooks with the real Stripe signature scheme."""
    stripe_gateway = StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)
    app.dependency_overrides[get_payment_gateway] = lambda: stripe_gateway
    yield TestClient(app)
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def save10(db_session):
    return CouponRepository(db_session).create(
        CouponCreate(
            code="SAVE10",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            min_purchase=Decimal("50"),
            max_discount_amount=Decimal("20"),
            usage_limit=100,
            expiration_date=datetime.now(UTC) + timedelta(days=30),
        )
    )


@pytest.fixture
def pending_order(db_session):
    return OrderRepository(db_session).create(
        first_name="Ada",
        last_name="Lovelace",
        contact_no="0123456789",
        address="1 Analytical Way",
        city="London",
        items=[{"productId": "p1", "quantity": 2, "price": 140.0}],
        total_amount=280.0,
        payment_method=PaymentMethod.ONLINE,
        payment_intent_id="pi_paid",
    )


def order_body(**overrides):
    body = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "contactNo": "0123456789",
        "address": "1 Analytical Way",
        "apartmentNo": "4B",
        "city": "London",
        "items": [{"productId": "p1", "size": "M", "quantity": 2, "price": 150}],
        "totalAmount": 280,
        "paymentIntentId": "pi_paid",
        "couponCode": "save10",
        "discount": 20,
        "userId": "user-1",
    }
    body.update(overrides)
    return body


def webhook_payload(event_type, intent_id="pi_paid", metadata=None, **extra):
    data_object = {"id": intent_id, "object": "payment_intent", "metadata": metadata or {}}
    data_object.update(extra)
    return json.dumps(
        {"id": "evt_1", "object": "event", "type": event_type, "data": {"object": data_object}}
    ).encode()


def post_webhook(client, payload, signature=None):
    return client.post(
        "/api/payment/webhook",
        content=payload,
        headers={
            "Content-Type": "application/json",
            "Stripe-Signature": signature or sign_stripe_payload(payload),
        },
    )


class TestCreatePaymentIntent:
    def test_basic_intent(self, client, gateway):
        response = client.post(
            "/api/payment/create-payment-intent",
            json={"items": [{"price": 19.99, "quantity": 2}], "currency": "USD"},
        )

        assert response.status_code == 200
        assert response.json() == {"clientSecret": "pi_new_secret", "paymentIntentId": "pi_new"}
        gateway.create_payment_intent.assert_called_once_with(3998, "usd", {"userId": "guest"})

    def test_coupon_aware_intent(self, client, gateway, save10):
        response = client.post(
            "/api/payment/create-payment-intent",
            json={
                "items": [{"price": 150, "quantity": 2}],
                "userId": "user-1",
                "couponCode": "SAVE10",
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "clientSecret": "pi_new_secret",
            "paymentIntentId": "pi_new",
            "usdSubtotal": 300.0,
            "amountInCents": 28000,
        }

    def test_items_required(self, client, gateway):
        response = client.post("/api/payment/create-payment-intent", json={"items": []})
        assert response.status_code == 400
        assert response.json()["detail"] == "items array is required"
        gateway.create_payment_intent.assert_not_called()

    def test_non_numeric_price_rejected(self, client, gateway):
        response = client.post(
            "/api/payment/create-payment-intent",
            json={"items": [{"price": "abc", "quantity": 1}]},
        )
        assert response.status_code == 422
        gateway.create_payment_intent.assert_not_called()

    @pytest.mark.parametrize(
        "item",
        [
            {"price": "19.99", "quantity": 2},
            {"price": 19.99, "quantity": "2"},
            {"price": True, "quantity": 100},
            {"price": 5, "quantity": 1.5},
        ],
    )
    def test_price_and_quantity_must_be_numbers(self, client, gateway, item):
        response = client.post("/api/payment/create-payment-intent", json={"items": [item]})

        assert response.status_code == 422
        gateway.create_payment_intent.assert_not_called()

    def test_amount_too_low(self, client, gateway):
        response = client.post(
            "/api/payment/create-payment-intent",
            json={"items": [{"price": 0.30, "quantity": 1}]},
        )
        assert response.status_code == 400
        assert "0.50" in response.json()["detail"]
        gateway.create_payment_intent.assert_not_called()

    def test_rejected_coupon(self, client, gateway, save10):
        response = client.post(
            "/api/payment/create-payment-intent",
            json={"items": [{"price": 10, "quantity": 1}], "userId": "u", "couponCode": "SAVE10"},
        )
        assert response.status_code == 400
        assert "50.00" in response.json()["detail"]


class TestApplyCoupon:
    def test_scenario_save10(self, client, save10):
        response = client.post(
            "/api/payment/apply-coupon",
            json={"code": "save10", "subtotal": 300, "userId": "user-1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["discount"] == 20
        assert data["discountType"] == "percentage"
        assert data["finalTotal"] == 280
        assert "20.00" in data["message"]

    def test_invalid_code(self, client):
        response = client.post("/api/payment/apply-coupon", json={"code": "NOPE", "subtotal": 10})
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Invalid coupon code"}

    def test_below_minimum(self, client, save10):
        response = client.post(
            "/api/payment/apply-coupon",
            json={"code": "SAVE10", "subtotal": 20, "userId": "user-1"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "50.00" in response.json()["message"]

    def test_login_required(self, client, save10):
        response = client.post(
            "/api/payment/apply-coupon", json={"code": "SAVE10", "subtotal": 300}
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestSaveOrder:
    def test_saves_paid_order(self, client, gateway, db_session, save10):
        response = client.post("/api/payment/save-order", json=order_body())

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Order saved"
        order = data["order"]
        assert order["paymentStatus"] == "paid"
        assert order["status"] == "Processing"
        assert order["paymentIntentId"] == "pi_paid"
        assert order["couponCode"] == "SAVE10"
        assert order["discount"] == 20
        assert order["userId"] == "user-1"
        assert order["items"] == [
            {"productId": "p1", "size": "M", "color": None, "quantity": 2, "price": 150.0}
        ]
        gateway.retrieve_payment_intent.assert_called_once_with("pi_paid")

        db_session.refresh(save10)
        assert save10.times_used == 1

    def test_missing_fields(self, client, gateway):
        body = order_body()
        del body["city"]
        body["items"] = []

        response = client.post("/api/payment/save-order", json=body)

        assert response.status_code == 400
        assert "city" in response.json()["detail"]
        assert "items" in response.json()["detail"]
        gateway.retrieve_payment_intent.assert_not_called()

    def test_payment_not_confirmed(self, client, gateway, db_session):
        gateway.retrieve_payment_intent.return_value = PaymentIntent(
            id="pi_paid", status="requires_payment_method", amount=28000, currency="usd"
        )

        response = client.post("/api/payment/save-order", json=order_body(couponCode=None))

        assert response.status_code == 400
        assert response.json()["detail"] == "Payment not completed"
        assert OrderRepository(db_session).get_by_payment_intent_id("pi_paid") is None

    def test_amount_mismatch(self, client, db_session):
        response = client.post(
            "/api/payment/save-order", json=order_body(totalAmount=1, couponCode=None)
        )
        assert response.status_code == 400
        assert OrderRepository(db_session).get_all() == []

    def test_second_save_returns_existing_order(self, client, db_session, save10):
        first = client.post("/api/payment/save-order", json=order_body())
        second = client.post("/api/payment/save-order", json=order_body())

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["order"]["id"] == first.json()["order"]["id"]
        assert len(OrderRepository(db_session).get_all()) == 1
        db_session.refresh(save10)
        assert save10.times_used == 1

    def test_reconciles_pre_created_order(self, client, pending_order):
        response = client.post("/api/payment/save-order", json=order_body(couponCode=None))

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["id"] == str(pending_order.id)
        assert order["paymentStatus"] == "paid"
        assert order["status"] == "Processing"

    def test_coupon_exhausted_rejects_order(self, client, db_session, save10):
        save10.usage_limit = 1
        save10.times_used = 1
        db_session.commit()

        response = client.post("/api/payment/save-order", json=order_body())

        assert response.status_code == 409
        assert OrderRepository(db_session).get_all() == []

    def test_string_item_price_rejected(self, client, gateway):
        body = order_body(items=[{"productId": "p1", "quantity": 2, "price": "150"}])

        response = client.post("/api/payment/save-order", json=body)

        assert response.status_code == 422
        gateway.retrieve_payment_intent.assert_not_called()

    def test_total_amount_includes_delivery_charge(self, client, db_session):
        body = order_body(
            couponCode=None,
            discount=None,
            items=[{"productId": "p1", "quantity": 2, "price": 135}],
            deliveryCharge=10,
            totalAmount=280,
        )

        response = client.post("/api/payment/save-order", json=body)

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["deliveryCharge"] == 10
        assert order["totalAmount"] == 280

    def test_delivery_charge_not_added_on_top_of_total(self, client, db_session):
        body = order_body(couponCode=None, deliveryCharge=10, totalAmount=290)

        response = client.post("/api/payment/save-order", json=body)

        assert response.status_code == 400
        assert OrderRepository(db_session).get_all() == []

    def test_gateway_failure(self, client, gateway):
        from storefront.core.errors import ExternalServiceError

        gateway.retrieve_payment_intent.side_effect = ExternalServiceError(
            "GatewayError", "Failed to verify payment"
        )
        response = client.post("/api/payment/save-order", json=order_body())
        assert response.status_code == 502


class TestWebhook:
    def test_succeeded_marks_order_paid(self, webhook_client, db_session, pending_order):
        payload = webhook_payload(
            "payment_intent.succeeded", metadata={"orderId": str(pending_order.id)}
        )

        response = post_webhook(webhook_client, payload)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db_session.refresh(pending_order)
        assert pending_order.payment_status == "paid"
        assert pending_order.status == "Processing"

    def test_succeeded_twice_is_idempotent(self, webhook_client, db_session, pending_order):
        payload = webhook_payload("payment_intent.succeeded")

        post_webhook(webhook_client, payload)
        db_session.refresh(pending_order)
        after_first = (pending_order.payment_status, pending_order.status)
        response = post_webhook(webhook_client, payload)

        assert response.status_code == 200
        db_session.refresh(pending_order)
        assert (pending_order.payment_status, pending_order.status) == after_first
        assert after_first == ("paid", "Processing")

    def test_late_success_does_not_regress_fulfilment(
        self, webhook_client, db_session, pending_order
    ):
        OrderRepository(db_session).update_status(pending_order.id, OrderStatus.SHIPPED)

        post_webhook(webhook_client, webhook_payload("payment_intent.succeeded"))

        db_session.refresh(pending_order)
        assert pending_order.payment_status == "paid"
        assert pending_order.status == "Shipped"

    def test_failed_marks_payment_failed(self, webhook_client, db_session, pending_order):
        payload = webhook_payload(
            "payment_intent.payment_failed",
            last_payment_error={"message": "Your card was declined."},
        )

        response = post_webhook(webhook_client, payload)

        assert response.status_code == 200
        db_session.refresh(pending_order)
        assert pending_order.payment_status == "failed"
        assert pending_order.status == "Pending"

    def test_failed_after_success_keeps_paid(self, webhook_client, db_session, pending_order):
        post_webhook(webhook_client, webhook_payload("payment_intent.succeeded"))
        post_webhook(webhook_client, webhook_payload("payment_intent.payment_failed"))

        db_session.refresh(pending_order)
        assert pending_order.payment_status == "paid"

    def test_unknown_event_acknowledged(self, webhook_client, db_session, pending_order):
        response = post_webhook(webhook_client, webhook_payload("charge.refunded"))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db_session.refresh(pending_order)
        assert pending_order.payment_status == "unpaid"

    def test_unknown_order_acknowledged(self, webhook_client):
        response = post_webhook(
            webhook_client, webhook_payload("payment_intent.succeeded", intent_id="pi_other")
        )
        assert response.status_code == 200

    def test_invalid_signature(self, webhook_client, db_session, pending_order):
        payload = webhook_payload("payment_intent.succeeded")

        response = post_webhook(
            webhook_client, payload, signature=sign_stripe_payload(payload, "whsec_wrong")
        )

        assert response.status_code == 400
        assert response.text.startswith("Webhook Error:")
        db_session.refresh(pending_order)
        assert pending_order.payment_status == "unpaid"
        assert pending_order.status == "Pending"

    def test_missing_signature(self, webhook_client):
        response = webhook_client.post(
            "/api/payment/webhook",
            content=webhook_payload("payment_intent.succeeded"),
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "payload",
        [
            b'{"type": "payment_intent.succeeded", "data": null}',
            b'{"type": "payment_intent.succeeded", "data": {"object": "pi_paid"}}',
            b"[1, 2, 3]",
            b'"payment_intent.succeeded"',
        ],
    )
    def test_signed_malformed_event_acknowledged(
        self, webhook_client, db_session, pending_order, payload
    ):
        response = post_webhook(webhook_client, payload)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        db_session.refresh(pending_order)
        assert pending_order.payment_status == "unpaid"
