"""
订单路由模块

处理用户侧订单相关的 API 端点：
- 创建订单（校验库存，快照价格）
- 查询自己的订单列表（分页）
- 根据订单号查询自己的订单详情

订单创建后为 PENDING，只能由支付回调或管理端按状态机推进。
"""
from __future__ import annotations

import math

from fastapi import APIRouter, Query
from sqlmodel import Session

from storefront import crud
from storefront.api.deps import CurrentUser, OrdersLogger, SessionDep
from storefront.api.errors import OrderNotFound
from storefront.api.schemas import (
    ApiEnvelope,
    OrderCreateRequest,
    OrderData,
    OrderDetailData,
    OrderItemData,
    OrdersData,
    TransactionData,
)
from storefront.models import Order, Transaction
from storefront.services.order_service import create_order as create_order_service
from storefront.services.stock_service import StockLine

router = APIRouter(prefix="/orders", tags=["orders"])


def to_order_data(order: Order) -> OrderData:
    """将订单模型转换为响应数据模型"""
    return OrderData(
        id=order.id,  # type: ignore[arg-type]
        invoice_number=order.invoice_number,
        user_id=order.user_id,
        total=order.total,
        currency=order.currency,
        status=order.status,
        payment_method=order.payment_method,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _to_transaction_data(tx: Transaction) -> TransactionData:
    return TransactionData(
        id=tx.id,  # type: ignore[arg-type]
        amount=tx.amount,
        status=tx.status,
        provider=tx.provider,
        provider_order_id=tx.provider_order_id,
        reference=tx.reference,
        payment_method=tx.payment_method,
        failure_reason=tx.failure_reason,
        created_at=tx.created_at,
    )


def to_order_detail(
    session: Session, order: Order, include_transactions: bool = False
) -> OrderDetailData:
    """
    订单详情：订单字段 + 明细 + 最新流水

    Args:
        include_transactions: 是否附带全部流水（管理端使用）
    """
    items = [
        OrderItemData(
            product_id=item.product_id,
            variant_id=item.variant_id,
            product_name=item.product_name,
            variant_name=item.variant_name,
            quantity=item.quantity,
            price=item.price,
        )
        for item in crud.get_order_items(session=session, order_id=order.id)  # type: ignore[arg-type]
    ]
    latest = crud.get_latest_transaction(session=session, order_id=order.id)  # type: ignore[arg-type]
    transactions: list[TransactionData] = []
    if include_transactions:
        transactions = [
            _to_transaction_data(tx)
            for tx in crud.list_order_transactions(session=session, order_id=order.id)  # type: ignore[arg-type]
        ]
    return OrderDetailData(
        **to_order_data(order).model_dump(),
        items=items,
        payment=_to_transaction_data(latest) if latest else None,
        transactions=transactions,
    )


@router.post("", response_model=ApiEnvelope)
def create_order(
    session: SessionDep,
    current_user: CurrentUser,
    logger: OrdersLogger,
    body: OrderCreateRequest,
) -> ApiEnvelope:
    """
    创建订单

    请求路径: POST /api/v1/orders

    同一规格出现多次时数量会合并后再校验库存。
    库存不足返回 400，规格不存在返回 404。
    """
    order = create_order_service(
        session=session,
        user_id=current_user.id,  # type: ignore[arg-type]
        lines=[StockLine(variant_id=i.variant_id, quantity=i.quantity) for i in body.items],
        payment_method=body.payment_method,
        logger=logger,
    )
    return ApiEnvelope(data=to_order_detail(session, order))


@router.get("", response_model=ApiEnvelope)
def list_orders(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    """
    获取当前用户的订单列表（分页，按创建时间倒序）

    请求路径: GET /api/v1/orders?page=1&limit=20
    """
    rows, count = crud.list_orders(
        session=session, page=page, limit=limit, user_id=current_user.id
    )
    return ApiEnvelope(
        data=OrdersData(
            data=[to_order_data(o) for o in rows],
            count=count,
            page=page,
            total_pages=math.ceil(count / limit),
        )
    )


@router.get("/{invoice_number}", response_model=ApiEnvelope)
def get_order(session: SessionDep, current_user: CurrentUser, invoice_number: str) -> ApiEnvelope:
    """
    获取订单详情

    只能查询自己的订单，别人的订单同样返回 404。
    """
    order = crud.get_order_by_invoice_number(session=session, invoice_number=invoice_number)
    if order is None or order.user_id != current_user.id:
        raise OrderNotFound(invoice_number)
    return ApiEnvelope(data=to_order_detail(session, order))
