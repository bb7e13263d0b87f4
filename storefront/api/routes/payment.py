"""
支付回调路由模块

- POST /payment/ipn: SePay IPN（订单维度支付通知）
- GET  /payment/ipn: 回调地址可用性检查
- POST /webhooks/sepay: SePay 银行转账到账通知
- POST /payment/initiate: 为自己的待支付订单生成 SePay 结账表单

两个回调共享同样的入口检查：
1. 解析客户端 IP 并校验白名单（本地环境可用 x-test-webhook 头跳过）
2. 校验 HMAC 签名
3. 解析 JSON 并规范化为 PaymentEvent
4. 交给 OrderReconciler 对账
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from sqlmodel import Session

from storefront.api.deps import CurrentUser, PaymentsLogger, RawBody, SessionDep
from storefront.api.errors import GatewayNotConfigured, MalformedPayload
from storefront.api.schemas import (
    ApiEnvelope,
    CheckoutData,
    PaymentInitiateRequest,
    WebhookAck,
)
from storefront.core.config import settings
from storefront.enums import ReconcileOutcome
from storefront.services.ip_allowlist import ensure_ip_allowed, get_client_ip
from storefront.services.order_service import initiate_payment
from storefront.services.reconciler import OrderReconciler, ReconcileResult
from storefront.services.sepay_checkout import Buyer
from storefront.services.sepay_service import (
    IPN_STATUS_MAP,
    PaymentEvent,
    check_webhook_signature,
    get_signature,
    normalize_bank_transfer_payload,
    normalize_ipn_payload,
)

router = APIRouter(tags=["payment"])

_MESSAGES = {
    ReconcileOutcome.paid: "Payment confirmed",
    ReconcileOutcome.already_paid: "Order already paid",
    ReconcileOutcome.duplicate: "Transaction already processed",
    ReconcileOutcome.amount_mismatch: "Amount mismatch",
    ReconcileOutcome.payment_failed: "Payment failure recorded",
    ReconcileOutcome.pending: "Payment pending",
}


def _admit(request: Request, logger: logging.Logger) -> None:
    """IP 白名单校验，在解析请求体之前执行"""
    is_test = (
        settings.ENVIRONMENT == "local"
        and request.headers.get("x-test-webhook", "").lower() == "true"
    )
    if is_test:
        logger.error("x-test-webhook header accepted, skipping IP allow-list")
        return
    client_ip = get_client_ip(request.headers)
    logger.info("Webhook from IP %s", client_ip)
    ensure_ip_allowed(client_ip, settings.sepay_allowed_ips, logger)


def _parse_json(body: bytes, logger: logging.Logger) -> Any:
    try:
        return json.loads(body)
    except ValueError as e:
        logger.error("Invalid JSON payload: %s", e)
        raise MalformedPayload("Invalid JSON")


def _reconcile(session: Session, event: PaymentEvent, logger: logging.Logger) -> WebhookAck:
    logger.info(
        "Processing payment event invoice=%s reference=%s status=%s amount=%s",
        event.order_reference,
        event.reference,
        event.provider_status,
        event.amount,
    )
    reconciler = OrderReconciler(
        session=session, logger=logger, amount_tolerance=settings.SEPAY_AMOUNT_TOLERANCE
    )
    return _to_ack(reconciler.reconcile(event))


def _to_ack(result: ReconcileResult) -> WebhookAck:
    return WebhookAck(
        success=result.outcome != ReconcileOutcome.amount_mismatch,
        message=_MESSAGES[result.outcome],
        outcome=result.outcome,
        duplicate=result.duplicate,
        order_id=result.order.id,  # type: ignore[arg-type]
        invoice_number=result.order.invoice_number,
        transaction_id=result.transaction.id if result.transaction else None,
        status=result.order.status,
    )


@router.post("/payment/ipn", response_model=WebhookAck)
def sepay_ipn(
    request: Request, body: RawBody, session: SessionDep, logger: PaymentsLogger
) -> WebhookAck:
    """
    SePay IPN 回调

    请求路径: POST /api/v1/payment/ipn

    金额不符时返回 200 且 success=false（网关重试也无法修正金额）。
    """
    _admit(request, logger)
    check_webhook_signature(
        body=body,
        signature=get_signature(request.headers),
        secret=settings.SEPAY_WEBHOOK_SECRET,
        environment=settings.ENVIRONMENT,
        logger=logger,
    )
    event = normalize_ipn_payload(_parse_json(body, logger))
    return _reconcile(session, event, logger)


@router.get("/payment/ipn", response_model=ApiEnvelope)
def sepay_ipn_status() -> ApiEnvelope:
    return ApiEnvelope(
        data={
            "message": "SePay IPN webhook endpoint is active",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "supportedStatuses": list(IPN_STATUS_MAP),
        }
    )


@router.post("/webhooks/sepay", response_model=WebhookAck)
def sepay_bank_transfer(
    request: Request, body: RawBody, session: SessionDep, logger: PaymentsLogger
) -> WebhookAck:
    """
    SePay 银行转账到账通知

    请求路径: POST /api/v1/webhooks/sepay

    订单号从转账备注中提取（"{SEPAY_DESCRIPTION_PREFIX} {订单号}"）。
    签名头可选，带了就必须正确。
    """
    _admit(request, logger)
    check_webhook_signature(
        body=body,
        signature=get_signature(request.headers),
        secret=settings.SEPAY_WEBHOOK_SECRET,
        environment=settings.ENVIRONMENT,
        logger=logger,
        required=False,
    )
    event = normalize_bank_transfer_payload(
        _parse_json(body, logger), settings.SEPAY_DESCRIPTION_PREFIX
    )
    return _reconcile(session, event, logger)


@router.post("/payment/initiate", response_model=ApiEnvelope)
def initiate(
    session: SessionDep,
    current_user: CurrentUser,
    logger: PaymentsLogger,
    body: PaymentInitiateRequest,
) -> ApiEnvelope:
    """
    发起付款

    请求路径: POST /api/v1/payment/initiate

    只有自己的 PENDING 订单可以发起付款，其他状态返回 409。
    返回网关结账地址和签名后的表单字段。
    """
    if not settings.SEPAY_MERCHANT_ID or not settings.SEPAY_SECRET_KEY:
        logger.error("SEPAY_MERCHANT_ID and SEPAY_SECRET_KEY must be configured to accept payments")
        raise GatewayNotConfigured()

    buyer_info = body.buyer_info
    buyer = Buyer(
        name=buyer_info.name if buyer_info and buyer_info.name else current_user.name,
        email=buyer_info.email if buyer_info and buyer_info.email else current_user.email,
        phone=buyer_info.phone if buyer_info else None,
    )
    order, fields = initiate_payment(
        session=session,
        order_id=body.order_id,
        user_id=current_user.id,  # type: ignore[arg-type]
        method=body.payment_method,
        buyer=buyer,
        merchant_id=settings.SEPAY_MERCHANT_ID,
        secret=settings.SEPAY_SECRET_KEY,
        base_url=settings.APP_BASE_URL,
        logger=logger,
    )
    return ApiEnvelope(
        data=CheckoutData(
            checkout_url=settings.sepay_checkout_url,
            form_fields=fields,
            order_id=order.id,  # type: ignore[arg-type]
            invoice_number=order.invoice_number,
        )
    )
