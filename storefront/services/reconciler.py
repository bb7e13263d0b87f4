"""
订单支付对账服务

根据规范化后的支付回调事件（PaymentEvent）更新订单和支付流水。

幂等约定：同一个回调（相同的幂等键 reference）无论投递多少次，
第一次成功处理之后的状态都不再改变，后续投递直接返回 duplicate。

处理规则：
1. 订单不存在 -> OrderNotFound
2. 幂等键已存在 -> duplicate，不写入任何数据
3. 金额不符 -> 记录失败流水（amount mismatch），订单状态不变，并发出告警
4. 网关报告失败 -> 记录失败流水，订单保持原状态（不自动取消）
5. 网关报告处理中 -> 记录待定流水
6. 网关报告成功：
   - 终态订单 -> 记录失败流水后抛出 InvalidTransition
   - 已支付订单 -> 记录成功流水，订单不变
   - 待支付订单 -> 条件更新 PENDING -> PAID，与成功流水在同一个数据库事务中提交
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

import sentry_sdk
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront import crud
from storefront.api.errors import InvalidTransition, OrderNotFound
from storefront.enums import (
    OrderStatus,
    PaymentOutcome,
    ReconcileOutcome,
    TransactionStatus,
)
from storefront.models import Order, Transaction, utc_now
from storefront.services.order_state import ensure_transition, is_paid, is_terminal
from storefront.services.sepay_service import PaymentEvent

AMOUNT_MISMATCH = "amount mismatch"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    order: Order
    transaction: Transaction | None = None

    @property
    def duplicate(self) -> bool:
        return self.outcome == ReconcileOutcome.duplicate


class OrderReconciler:
    def __init__(
        self, *, session: Session, logger: logging.Logger, amount_tolerance: int = 0
    ) -> None:
        self.session = session
        self.logger = logger
        self.amount_tolerance = Decimal(amount_tolerance)

    def reconcile(self, event: PaymentEvent) -> ReconcileResult:
        """
        处理一次支付回调

        Raises:
            OrderNotFound: 订单号不存在
            InvalidTransition: 终态订单收到支付成功回调
        """
        order = crud.get_order_by_invoice_number(
            session=self.session, invoice_number=event.order_reference
        )
        if order is None:
            self.logger.error("Order with invoice %s not found", event.order_reference)
            raise OrderNotFound(event.order_reference)

        existing = crud.get_transaction_by_reference(
            session=self.session, reference=event.reference
        )
        if existing is not None:
            self.logger.info("Transaction %s already processed", event.reference)
            return ReconcileResult(ReconcileOutcome.duplicate, order, existing)

        if abs(Decimal(event.amount) - Decimal(order.total)) > self.amount_tolerance:
            return self._record_amount_mismatch(order, event)

        if event.outcome == PaymentOutcome.failed:
            return self._record(
                order,
                event,
                ReconcileOutcome.payment_failed,
                TransactionStatus.failed,
                failure_reason=f"provider status {event.provider_status}",
            )
        if event.outcome == PaymentOutcome.pending:
            return self._record(order, event, ReconcileOutcome.pending, TransactionStatus.pending)

        return self._apply_paid(order, event)

    def _apply_paid(self, order: Order, event: PaymentEvent) -> ReconcileResult:
        current = OrderStatus(order.status)

        if is_terminal(current):
            result = self._record(
                order,
                event,
                ReconcileOutcome.payment_failed,
                TransactionStatus.failed,
                failure_reason="invalid transition",
            )
            if result.duplicate:
                return result
            self.logger.error(
                "Payment reported for order %s in terminal status %s",
                order.invoice_number,
                current.value,
            )
            raise InvalidTransition(current.value, OrderStatus.paid.value)

        if is_paid(current):
            self.logger.warning(
                "Order %s already %s, recording payment %s without status change",
                order.invoice_number,
                current.value,
                event.reference,
            )
            return self._record(
                order,
                event,
                ReconcileOutcome.already_paid,
                TransactionStatus.success,
                failure_reason="order already paid",
            )

        ensure_transition(current, OrderStatus.paid)
        if not self._mark_paid(order, event):
            # Another delivery moved the order between read and write.
            self.session.refresh(order)
            return self._apply_paid(order, event)

        result = self._record(order, event, ReconcileOutcome.paid, TransactionStatus.success)
        if not result.duplicate:
            self.logger.info(
                "Order %s marked PAID by transaction %s (amount %s)",
                order.invoice_number,
                event.reference,
                event.amount,
            )
        return result

    def _mark_paid(self, order: Order, event: PaymentEvent) -> bool:
        """条件更新：只有当前状态仍为 PENDING 时才写入 PAID"""
        statement = (
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.pending.value)
            .values(
                status=OrderStatus.paid.value,
                payment_method=event.payment_method or order.payment_method,
                updated_at=utc_now(),
            )
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        return result.rowcount == 1

    def _record_amount_mismatch(self, order: Order, event: PaymentEvent) -> ReconcileResult:
        result = self._record(
            order,
            event,
            ReconcileOutcome.amount_mismatch,
            TransactionStatus.failed,
            failure_reason=AMOUNT_MISMATCH,
        )
        if not result.duplicate:
            message = (
                f"Amount mismatch for order {order.invoice_number}: "
                f"expected {order.total}, got {event.amount}"
            )
            self.logger.error(message)
            sentry_sdk.capture_message(message, level="error")
        return result

    def _record(
        self,
        order: Order,
        event: PaymentEvent,
        outcome: ReconcileOutcome,
        status: TransactionStatus,
        failure_reason: str | None = None,
    ) -> ReconcileResult:
        """
        追加一条支付流水并提交

        与调用方之前的写入（如订单状态更新）在同一个事务里提交。
        幂等键冲突说明并发的相同回调已经处理完成，回滚并返回 duplicate。
        """
        tx = Transaction(
            order_id=order.id,
            amount=Decimal(event.amount),
            status=status,
            provider_order_id=event.provider_transaction_id,
            reference=event.reference,
            payment_method=event.payment_method,
            failure_reason=failure_reason,
            gateway_data=event.raw,
        )
        self.session.add(tx)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            self.logger.info("Transaction %s recorded concurrently", event.reference)
            existing = crud.get_transaction_by_reference(
                session=self.session, reference=event.reference
            )
            self.session.refresh(order)
            return ReconcileResult(ReconcileOutcome.duplicate, order, existing)
        self.session.refresh(tx)
        self.session.refresh(order)
        return ReconcileResult(outcome, order, tx)
