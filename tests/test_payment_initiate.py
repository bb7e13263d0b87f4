from __future__ import annotations

import json
from decimal import Decimal

import pytest

from storefront.api.errors import InvalidTransition, MalformedPayload, OrderNotFound
from storefront.core.config import settings
from storefront.core.security import sign_payload
from storefront.enums import CheckoutMethod, OrderStatus
from storefront.services.order_service import initiate_payment
from storefront.services.sepay_checkout import (
    Buyer,
    build_checkout_fields,
    redirect_urls,
    signing_string,
)

INITIATE_URL = "/api/v1/payment/initiate"
SECRET = "checkout-secret"


def _fields(**overrides):
    values = dict(
        merchant_id="MERCHANT-1",
        secret=SECRET,
        method=CheckoutMethod.bank_transfer,
        invoice_number="INV-1700000000-ABC123",
        amount=Decimal("150000"),
        currency="VND",
        base_url="https://shop.example.com/",
        order_id=7,
        buyer=Buyer(name="Nguyen Van A", email="a@example.com", phone="0900000000"),
    )
    values.update(overrides)
    return build_checkout_fields(**values)


def test_build_checkout_fields():
    fields = _fields()

    assert fields["merchant"] == "MERCHANT-1"
    assert fields["operation"] == "PURCHASE"
    assert fields["payment_method"] == "BANK_TRANSFER"
    assert fields["order_amount"] == "150000"
    assert fields["currency"] == "VND"
    assert fields["order_description"] == "Thanh toán đơn hàng INV-1700000000-ABC123"
    assert fields["customer_id"] == "a@example.com"
    assert fields["success_url"] == "https://shop.example.com/payment/success?orderId=7"
    assert fields["error_url"] == "https://shop.example.com/payment/error?orderId=7"
    assert fields["cancel_url"] == "https://shop.example.com/payment/cancel?orderId=7"
    assert json.loads(fields["custom_data"]) == {
        "buyer_name": "Nguyen Van A",
        "buyer_email": "a@example.com",
        "buyer_phone": "0900000000",
    }


def test_checkout_signature_covers_signed_fields():
    fields = _fields()

    assert fields["signature"] == sign_payload(signing_string(fields).encode(), SECRET)
    assert signing_string(fields).startswith("merchant=MERCHANT-1,operation=PURCHASE,")
    assert "custom_data" not in signing_string(fields)

    tampered = dict(fields, order_amount="1")
    assert sign_payload(signing_string(tampered).encode(), SECRET) != fields["signature"]


def test_card_payments_omit_payment_method():
    fields = _fields(method=CheckoutMethod.card, buyer=None)

    assert "payment_method" not in fields
    assert "customer_id" not in fields
    assert "payment_method" not in signing_string(fields)


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": Decimal("0")},
        {"amount": Decimal("-5")},
        {"amount": Decimal("1000.50")},
        {"currency": "USD"},
    ],
)
def test_build_checkout_fields_rejects_bad_orders(overrides):
    with pytest.raises(MalformedPayload):
        _fields(**overrides)


def test_redirect_urls_encode_query():
    urls = redirect_urls("http://localhost:3000", 42)
    assert urls == {
        "success_url": "http://localhost:3000/payment/success?orderId=42",
        "error_url": "http://localhost:3000/payment/error?orderId=42",
        "cancel_url": "http://localhost:3000/payment/cancel?orderId=42",
    }


def _initiate(db, order, logger, user_id=None):
    return initiate_payment(
        session=db,
        order_id=order.id,
        user_id=order.user_id if user_id is None else user_id,
        method=CheckoutMethod.napas_bank_transfer,
        buyer=None,
        merchant_id="MERCHANT-1",
        secret=SECRET,
        base_url="https://shop.example.com",
        logger=logger,
    )


def test_initiate_payment_for_pending_order(db, make_order, logger):
    order = make_order(total="250000")

    returned, fields = _initiate(db, order, logger)

    assert returned.id == order.id
    assert fields["order_invoice_number"] == order.invoice_number
    assert fields["order_amount"] == "250000"
    assert fields["payment_method"] == "NAPAS_BANK_TRANSFER"
    db.refresh(order)
    assert order.status == OrderStatus.pending


@pytest.mark.parametrize(
    "status",
    [OrderStatus.paid, OrderStatus.processing, OrderStatus.shipped, OrderStatus.cancelled],
)
def test_initiate_payment_rejects_non_pending(db, make_order, logger, status):
    order = make_order(status=status)
    with pytest.raises(InvalidTransition) as exc:
        _initiate(db, order, logger)
    assert exc.value.status_code == 409


def test_initiate_payment_other_users_order(db, make_order, make_user, logger):
    order = make_order()
    with pytest.raises(OrderNotFound):
        _initiate(db, order, logger, user_id=make_user().id)


@pytest.fixture
def gateway_settings(monkeypatch):
    monkeypatch.setattr(settings, "SEPAY_MERCHANT_ID", "MERCHANT-1")
    monkeypatch.setattr(settings, "SEPAY_SECRET_KEY", SECRET)
    monkeypatch.setattr(settings, "SEPAY_ENV", "sandbox")
    monkeypatch.setattr(settings, "APP_BASE_URL", "https://shop.example.com")


def test_initiate_endpoint(client, gateway_settings, make_user, make_order, headers_for):
    user = make_user(name="Tran Thi B")
    order = make_order(total="99000", user=user)

    r = client.post(
        INITIATE_URL,
        headers=headers_for(user),
        json={"orderId": order.id, "paymentMethod": "CARD", "buyerInfo": {"phone": "0911"}},
    )

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["checkoutUrl"] == "https://pay-sandbox.sepay.vn/v1/checkout/init"
    assert data["invoiceNumber"] == order.invoice_number
    fields = data["formFields"]
    assert "payment_method" not in fields
    assert fields["customer_id"] == user.email
    assert json.loads(fields["custom_data"])["buyer_name"] == "Tran Thi B"
    assert json.loads(fields["custom_data"])["buyer_phone"] == "0911"
    assert fields["signature"] == sign_payload(signing_string(fields).encode(), SECRET)


def test_initiate_endpoint_production_url(
    client, gateway_settings, monkeypatch, make_user, make_order, headers_for
):
    monkeypatch.setattr(settings, "SEPAY_ENV", "production")
    user = make_user()
    order = make_order(user=user)

    r = client.post(
        INITIATE_URL,
        headers=headers_for(user),
        json={"orderId": order.id, "paymentMethod": "BANK_TRANSFER"},
    )

    assert r.json()["data"]["checkoutUrl"] == "https://pay.sepay.vn/v1/checkout/init"


def test_initiate_endpoint_rejects_paid_order(
    client, gateway_settings, make_user, make_order, headers_for
):
    user = make_user()
    order = make_order(status=OrderStatus.paid, user=user)

    r = client.post(
        INITIATE_URL,
        headers=headers_for(user),
        json={"orderId": order.id, "paymentMethod": "BANK_TRANSFER"},
    )

    assert r.status_code == 409
    assert r.json()["code"] == 409001


def test_initiate_endpoint_hides_other_users_orders(
    client, gateway_settings, make_user, make_order, headers_for
):
    order = make_order()
    r = client.post(
        INITIATE_URL,
        headers=headers_for(make_user()),
        json={"orderId": order.id, "paymentMethod": "BANK_TRANSFER"},
    )
    assert r.status_code == 404


def test_initiate_endpoint_validation(client, gateway_settings, make_user, headers_for):
    r = client.post(
        INITIATE_URL,
        headers=headers_for(make_user()),
        json={"orderId": 1, "paymentMethod": "CASH"},
    )
    assert r.status_code == 400


def test_initiate_endpoint_requires_auth(client, gateway_settings):
    r = client.post(INITIATE_URL, json={"orderId": 1, "paymentMethod": "CARD"})
    assert r.status_code in (401, 403)


def test_initiate_endpoint_without_gateway_config(
    client, monkeypatch, make_user, make_order, headers_for
):
    monkeypatch.setattr(settings, "SEPAY_MERCHANT_ID", None)
    user = make_user()
    order = make_order(user=user)

    r = client.post(
        INITIATE_URL,
        headers=headers_for(user),
        json={"orderId": order.id, "paymentMethod": "CARD"},
    )

    assert r.status_code == 500
    assert r.json()["code"] == 500102
