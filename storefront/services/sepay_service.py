"""
SePay 支付回调解析

支持两种回调格式：
- IPN（Instant Payment Notification）：订单维度的支付通知，带明确的支付状态
- 银行转账 webhook：到账通知，订单号写在转账备注里，到账即视为支付成功

两种格式都会被规范化为 PaymentEvent，再交给对账服务处理。
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from storefront.api.errors import AppError, InvalidSignature, MalformedPayload
from storefront.core.security import verify_signature
from storefront.enums import PaymentOutcome

# 网关状态 -> 内部三态
IPN_STATUS_MAP: dict[str, PaymentOutcome] = {
    "ORDER_PAID": PaymentOutcome.paid,
    "ORDER_FAILED": PaymentOutcome.failed,
    "ORDER_CANCELLED": PaymentOutcome.failed,
    "ORDER_PENDING": PaymentOutcome.pending,
    "ORDER_PROCESSING": PaymentOutcome.pending,
}

IPN_REQUIRED_FIELDS = (
    "order_invoice_number",
    "sepay_order_id",
    "status",
    "amount",
    "payment_method",
    "transaction_time",
)

BANK_TRANSFER_REQUIRED_FIELDS = (
    "id",
    "gateway",
    "transactionDate",
    "accountNumber",
    "amount",
    "content",
    "referenceCode",
    "description",
)

SIGNATURE_HEADERS = ("x-sepay-signature", "signature")


@dataclass
class PaymentEvent:
    """规范化后的支付回调事件"""

    order_reference: str  # 订单号（invoice_number）
    amount: int  # 网关上报金额（VND，整数）
    outcome: PaymentOutcome
    provider_status: str  # 网关原始状态字符串
    provider_transaction_id: str
    reference: str  # 幂等键
    payment_method: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def _parse_amount(value: Any) -> int:
    # bool is an int subclass
    if isinstance(value, bool):
        raise MalformedPayload("Invalid amount")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        value = value.strip()
        if value.isascii() and value.isdigit():
            return int(value)
    raise MalformedPayload("Invalid amount")


def _require_fields(payload: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedPayload("Invalid payload structure")
    for name in fields:
        value = payload.get(name)
        if value is None or value == "":
            raise MalformedPayload(f"Missing required field: {name}")
    return payload


def map_ipn_status(status: str) -> PaymentOutcome:
    outcome = IPN_STATUS_MAP.get(status.upper())
    if outcome is None:
        raise MalformedPayload(f"Unsupported status: {status}")
    return outcome


def normalize_ipn_payload(payload: Any) -> PaymentEvent:
    """
    规范化 IPN 回调

    幂等键格式：IPN-{sepay_order_id}-{transaction_time}

    Raises:
        MalformedPayload: 缺少必填字段、金额非整数或状态无法识别
    """
    data = _require_fields(payload, IPN_REQUIRED_FIELDS)
    status = str(data["status"])
    sepay_order_id = str(data["sepay_order_id"])
    return PaymentEvent(
        order_reference=str(data["order_invoice_number"]).strip(),
        amount=_parse_amount(data["amount"]),
        outcome=map_ipn_status(status),
        provider_status=status,
        provider_transaction_id=sepay_order_id,
        reference=f"IPN-{sepay_order_id}-{data['transaction_time']}",
        payment_method=str(data["payment_method"]),
        raw=data,
    )


def extract_invoice_number(description: str, prefix: str) -> str | None:
    """从转账备注中提取订单号，格式："{prefix} {invoice_number}" """
    match = re.search(rf"{re.escape(prefix)}\s+(\S+)", description, re.IGNORECASE)
    return match.group(1).strip() if match else None


def normalize_bank_transfer_payload(payload: Any, prefix: str) -> PaymentEvent:
    """
    规范化银行转账回调

    到账通知本身就代表付款成功，因此结果固定为 PAID。
    幂等键格式：{gateway}-{id}-{transactionDate}

    Raises:
        MalformedPayload: 缺少必填字段或备注中没有订单号
    """
    data = _require_fields(payload, BANK_TRANSFER_REQUIRED_FIELDS)
    invoice_number = extract_invoice_number(str(data["description"]), prefix)
    if not invoice_number:
        raise MalformedPayload("Invalid order description")
    return PaymentEvent(
        order_reference=invoice_number,
        amount=_parse_amount(data["amount"]),
        outcome=PaymentOutcome.paid,
        provider_status="TRANSFER_IN",
        provider_transaction_id=str(data["referenceCode"]),
        reference=f"{data['gateway']}-{data['id']}-{data['transactionDate']}",
        payment_method="BANK_TRANSFER",
        raw=data,
    )


def get_signature(headers: Mapping[str, str]) -> str | None:
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def check_webhook_signature(
    *,
    body: bytes,
    signature: str | None,
    secret: str | None,
    environment: str,
    logger: logging.Logger,
    required: bool = True,
) -> None:
    """
    校验回调签名（HMAC-SHA256，对原始请求体计算）

    - 未配置密钥：本地环境跳过校验并告警，其他环境直接报错
    - required=False 时，没有签名头则跳过（银行转账回调不一定带签名）

    Raises:
        InvalidSignature: 签名缺失或不匹配
        AppError: 非本地环境未配置密钥
    """
    if not signature and not required:
        logger.warning("No webhook signature provided, relying on IP allow-list")
        return

    if not secret:
        if environment == "local":
            logger.error("SEPAY_WEBHOOK_SECRET not configured, skipping signature check")
            return
        logger.error("SEPAY_WEBHOOK_SECRET must be configured outside local environment")
        raise AppError(code=500101, message="Webhook secret not configured", status_code=500)

    if not signature:
        raise InvalidSignature("Missing signature")
    if not verify_signature(body, signature, secret):
        logger.error("Invalid webhook signature")
        raise InvalidSignature()
