"""
订单服务

- 创建订单：校验规格和库存，快照单价和名称，生成订单号
- 管理端更新订单状态：所有流转都经过 order_state 状态机
- 发起付款：只有待支付订单可以生成 SePay 结账表单
"""
from __future__ import annotations

import logging
import secrets
import time
from collections import OrderedDict
from decimal import Decimal

from sqlmodel import Session

from storefront.api.errors import (
    AppError,
    InsufficientStock,
    InvalidTransition,
    OrderNotFound,
)
from storefront.enums import CheckoutMethod, OrderStatus
from storefront.models import Order, OrderItem, Product, Variant, utc_now
from storefront.services.order_state import ensure_transition
from storefront.services.sepay_checkout import Buyer, build_checkout_fields
from storefront.services.stock_service import StockLine, check_stock


def generate_invoice_number() -> str:
    """订单号格式：INV-{时间戳}-{6 位大写十六进制}"""
    return f"INV-{int(time.time())}-{secrets.token_hex(3).upper()}"


def merge_lines(lines: list[StockLine]) -> list[StockLine]:
    """合并同一规格的多行，数量相加，保持首次出现的顺序"""
    merged: OrderedDict[int, int] = OrderedDict()
    for line in lines:
        merged[line.variant_id] = merged.get(line.variant_id, 0) + line.quantity
    return [StockLine(variant_id=v, quantity=q) for v, q in merged.items()]


def create_order(
    *,
    session: Session,
    user_id: int,
    lines: list[StockLine],
    payment_method: str | None,
    logger: logging.Logger,
) -> Order:
    """
    创建待支付订单

    Raises:
        VariantNotFound: 任意规格不存在
        InsufficientStock: 任意规格库存不足
    """
    lines = merge_lines(lines)
    if not lines:
        raise AppError(code=400102, message="Order must contain at least one item", status_code=400)

    for info in check_stock(session=session, items=lines, logger=logger):
        if not info.is_sufficient:
            raise InsufficientStock(
                f"Insufficient stock for {info.variant_name}. "
                f"Available: {info.available}, Requested: {info.required}"
            )

    items: list[OrderItem] = []
    total = Decimal("0.00")
    for line in lines:
        variant = session.get(Variant, line.variant_id)
        product = session.get(Product, variant.product_id)  # type: ignore[union-attr]
        price = Decimal(variant.price)  # type: ignore[union-attr]
        total += price * line.quantity
        items.append(
            OrderItem(
                product_id=product.id,  # type: ignore[union-attr]
                variant_id=line.variant_id,
                quantity=line.quantity,
                price=price,
                product_name=product.name,  # type: ignore[union-attr]
                variant_name=variant.name,  # type: ignore[union-attr]
            )
        )

    order = Order(
        user_id=user_id,
        invoice_number=generate_invoice_number(),
        total=total,
        status=OrderStatus.pending,
        payment_method=payment_method,
    )
    session.add(order)
    session.flush()

    for item in items:
        item.order_id = order.id  # type: ignore[assignment]
        session.add(item)
    session.commit()
    session.refresh(order)
    logger.info("Created order %s total %s for user %s", order.invoice_number, total, user_id)
    return order


def update_order_status(
    *, session: Session, order_id: int, status: OrderStatus, logger: logging.Logger
) -> Order:
    """
    管理端更新订单状态

    Raises:
        OrderNotFound: 订单不存在
        InvalidTransition: 状态流转不合法
    """
    order = session.get(Order, order_id, with_for_update=True)
    if order is None:
        raise OrderNotFound(order_id)

    previous = OrderStatus(order.status)
    order.status = ensure_transition(previous, status)
    order.updated_at = utc_now()
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info("Order %s status %s -> %s", order.invoice_number, previous.value, status.value)
    return order


def initiate_payment(
    *,
    session: Session,
    order_id: int,
    user_id: int,
    method: CheckoutMethod,
    buyer: Buyer | None,
    merchant_id: str,
    secret: str,
    base_url: str,
    logger: logging.Logger,
) -> tuple[Order, dict[str, str]]:
    """
    为用户自己的订单生成结账表单字段

    Raises:
        OrderNotFound: 订单不存在或不属于该用户
        InvalidTransition: 订单不是 PENDING（已支付、处理中或已结束）
        MalformedPayload: 订单金额或币种不能用于付款
    """
    order = session.get(Order, order_id)
    if order is None or order.user_id != user_id:
        raise OrderNotFound(order_id)
    if not order.invoice_number:
        raise AppError(code=400103, message="Order has no invoice number", status_code=400)

    current = OrderStatus(order.status)
    try:
        ensure_transition(current, OrderStatus.paid)
    except InvalidTransition:
        logger.warning(
            "Payment initiation refused for order %s in status %s",
            order.invoice_number,
            current.value,
        )
        raise

    fields = build_checkout_fields(
        merchant_id=merchant_id,
        secret=secret,
        method=method,
        invoice_number=order.invoice_number,
        amount=Decimal(order.total),
        currency=order.currency,
        base_url=base_url,
        order_id=order.id,  # type: ignore[arg-type]
        buyer=buyer,
    )
    logger.info(
        "Payment initiated for order %s via %s amount %s",
        order.invoice_number,
        method.value,
        fields["order_amount"],
    )
    return order, fields
