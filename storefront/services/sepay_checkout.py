"""
SePay 结账表单

发起付款时，后端生成一组签名后的表单字段，前端把它们 POST 到网关的结账地址。
签名为 HMAC-SHA256，对 SIGNED_FIELDS 中出现的字段按顺序拼接成
"field=value,field=value" 后计算。
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import urlencode

from storefront.api.errors import MalformedPayload
from storefront.core.security import sign_payload
from storefront.enums import CheckoutMethod

OPERATION = "PURCHASE"
SUPPORTED_CURRENCY = "VND"

SIGNED_FIELDS = (
    "merchant",
    "operation",
    "payment_method",
    "order_amount",
    "currency",
    "order_invoice_number",
    "order_description",
    "customer_id",
    "success_url",
    "error_url",
    "cancel_url",
)


@dataclass
class Buyer:
    name: str | None = None
    email: str | None = None
    phone: str | None = None


def redirect_urls(base_url: str, order_id: int) -> dict[str, str]:
    """支付结果跳转地址：{base}/payment/{success|error|cancel}?orderId=..."""
    base = base_url.rstrip("/")
    query = urlencode({"orderId": order_id})
    return {
        f"{outcome}_url": f"{base}/payment/{outcome}?{query}"
        for outcome in ("success", "error", "cancel")
    }


def signing_string(fields: dict[str, str]) -> str:
    return ",".join(f"{name}={fields[name]}" for name in SIGNED_FIELDS if name in fields)


def sign_checkout_fields(fields: dict[str, str], secret: str) -> str:
    return sign_payload(signing_string(fields).encode(), secret)


def build_checkout_fields(
    *,
    merchant_id: str,
    secret: str,
    method: CheckoutMethod,
    invoice_number: str,
    amount: Decimal,
    currency: str,
    base_url: str,
    order_id: int,
    buyer: Buyer | None = None,
) -> dict[str, str]:
    """
    生成结账表单字段（含 signature）

    Raises:
        MalformedPayload: 金额不大于 0、金额不是整数 VND、币种不是 VND
    """
    if amount <= 0:
        raise MalformedPayload("Order amount must be greater than 0")
    if currency != SUPPORTED_CURRENCY:
        raise MalformedPayload("Only VND currency is supported")
    if amount != amount.to_integral_value():
        raise MalformedPayload("Order amount must be a whole number of VND")

    buyer = buyer or Buyer()
    fields: dict[str, str] = {"merchant": merchant_id, "operation": OPERATION}
    if method != CheckoutMethod.card:
        fields["payment_method"] = method.value
    fields.update(
        order_amount=str(int(amount)),
        currency=currency,
        order_invoice_number=invoice_number,
        order_description=f"Thanh toán đơn hàng {invoice_number}",
    )
    if buyer.email:
        fields["customer_id"] = buyer.email
    fields.update(redirect_urls(base_url, order_id))
    fields["custom_data"] = json.dumps(
        {"buyer_name": buyer.name, "buyer_email": buyer.email, "buyer_phone": buyer.phone},
        ensure_ascii=False,
    )
    fields["signature"] = sign_checkout_fields(fields, secret)
    return fields
