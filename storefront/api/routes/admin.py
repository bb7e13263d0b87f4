"""
管理后台路由模块

所有接口都需要管理员身份（Bearer token 且 role=ADMIN）。

- POST  /admin/stock/check: 批量库存检查
- GET   /admin/inventory: 所有规格的库存
- GET   /admin/inventory/summary: 库存汇总（低库存、缺货）
- GET   /admin/variants/{variant_id}/stock: 单个规格库存
- POST  /admin/variants/{variant_id}/units: 添加库存单元
- GET   /admin/orders: 订单列表（筛选、搜索、分页）
- GET   /admin/orders/stats: 订单统计
- GET   /admin/orders/{order_id}: 订单详情（含支付流水）
- PATCH /admin/orders/{order_id}/status: 更新订单状态
"""
from __future__ import annotations

import math

from fastapi import APIRouter, Query

from storefront import crud
from storefront.api.deps import CurrentAdmin, InventoryLogger, OrdersLogger, SessionDep
from storefront.api.errors import OrderNotFound, VariantNotFound
from storefront.api.routes.orders import to_order_data, to_order_detail
from storefront.api.schemas import (
    AddUnitsData,
    AddUnitsRequest,
    ApiEnvelope,
    InventoryItemData,
    InventorySummaryData,
    OrdersData,
    OrderStatsData,
    OrderStatusUpdateRequest,
    StockCheckRequest,
    StockCheckResponse,
    StockInfoData,
    VariantStockData,
)
from storefront.core.config import settings
from storefront.enums import OrderStatus
from storefront.models import Order
from storefront.services.inventory_service import add_credentials
from storefront.services.order_service import update_order_status
from storefront.services.stock_service import StockLine, check_stock

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/stock/check", response_model=StockCheckResponse)
def stock_check(
    session: SessionDep, _: CurrentAdmin, logger: InventoryLogger, body: StockCheckRequest
) -> StockCheckResponse:
    """
    批量库存检查

    请求体：{"items": [{"variantId": 1, "quantity": 2}]}
    任一规格不存在时返回 404，不返回部分结果。
    """
    infos = check_stock(
        session=session,
        items=[StockLine(variant_id=i.variant_id, quantity=i.quantity) for i in body.items],
        logger=logger,
    )
    return StockCheckResponse(
        stock_info=[
            StockInfoData(
                variant_id=info.variant_id,
                variant_name=info.variant_name,
                product_name=info.product_name,
                required=info.required,
                available=info.available,
                is_sufficient=info.is_sufficient,
            )
            for info in infos
        ]
    )


def _inventory(session: SessionDep) -> list[InventoryItemData]:
    return [
        InventoryItemData(
            id=variant.id,  # type: ignore[arg-type]
            name=variant.name,
            price=variant.price,
            duration_days=variant.duration_days,
            product_id=product.id,  # type: ignore[arg-type]
            product_name=product.name,
            stock=VariantStockData(total=stock.total, sold=stock.sold, available=stock.available),
        )
        for variant, product, stock in crud.list_inventory(session=session)
    ]


@router.get("/inventory", response_model=ApiEnvelope)
def inventory(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    return ApiEnvelope(data=_inventory(session))


@router.get("/inventory/summary", response_model=ApiEnvelope)
def inventory_summary(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    """
    库存汇总

    低库存：0 < 可用 <= LOW_STOCK_THRESHOLD
    缺货：可用 == 0 且曾经入过库
    """
    items = _inventory(session)
    total_items = sum(i.stock.total for i in items)
    total_sold = sum(i.stock.sold for i in items)
    low = [i for i in items if 0 < i.stock.available <= settings.LOW_STOCK_THRESHOLD]
    out = [i for i in items if i.stock.available == 0 and i.stock.total > 0]
    return ApiEnvelope(
        data=InventorySummaryData(
            total_items=total_items,
            total_sold=total_sold,
            total_available=total_items - total_sold,
            low_stock_count=len(low),
            out_of_stock_count=len(out),
            low_stock_items=low,
            out_of_stock_items=out,
        )
    )


@router.get("/variants/{variant_id}/stock", response_model=ApiEnvelope)
def variant_stock(session: SessionDep, _: CurrentAdmin, variant_id: int) -> ApiEnvelope:
    if crud.get_variant(session=session, variant_id=variant_id) is None:
        raise VariantNotFound(variant_id)
    stock = crud.get_variant_stock(session=session, variant_id=variant_id)
    return ApiEnvelope(
        data=VariantStockData(total=stock.total, sold=stock.sold, available=stock.available)
    )


@router.post("/variants/{variant_id}/units", response_model=ApiEnvelope)
def add_variant_units(
    session: SessionDep,
    _: CurrentAdmin,
    logger: InventoryLogger,
    variant_id: int,
    body: AddUnitsRequest,
) -> ApiEnvelope:
    """
    添加库存单元（账号凭据）

    每行 "email:password"，加密后存储；同一规格下已存在的凭据会被跳过。
    """
    if crud.get_variant(session=session, variant_id=variant_id) is None:
        raise VariantNotFound(variant_id)
    added, duplicates = add_credentials(
        session=session, variant_id=variant_id, credentials=body.credentials(), logger=logger
    )
    logger.info("Added %d unit(s) to variant %s, %d duplicate(s)", added, variant_id, duplicates)
    return ApiEnvelope(
        message=f"Successfully added {added} accounts",
        data=AddUnitsData(added=added, duplicates=duplicates),
    )


@router.get("/orders", response_model=ApiEnvelope)
def list_orders(
    session: SessionDep,
    _: CurrentAdmin,
    status: OrderStatus | None = None,
    search: str | None = Query(default=None, max_length=128),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    rows, count = crud.list_orders(
        session=session, page=page, limit=limit, status=status, search=search
    )
    return ApiEnvelope(
        data=OrdersData(
            data=[to_order_data(o) for o in rows],
            count=count,
            page=page,
            total_pages=math.ceil(count / limit),
        )
    )


@router.get("/orders/stats", response_model=ApiEnvelope)
def order_stats(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    return ApiEnvelope(data=OrderStatsData(**crud.get_order_stats(session=session)))


@router.get("/orders/{order_id}", response_model=ApiEnvelope)
def get_order(session: SessionDep, _: CurrentAdmin, order_id: int) -> ApiEnvelope:
    order = session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return ApiEnvelope(data=to_order_detail(session, order, include_transactions=True))


@router.patch("/orders/{order_id}/status", response_model=ApiEnvelope)
def change_order_status(
    session: SessionDep,
    _: CurrentAdmin,
    logger: OrdersLogger,
    order_id: int,
    body: OrderStatusUpdateRequest,
) -> ApiEnvelope:
    """更新订单状态，非法流转（包括离开终态）返回 409"""
    order = update_order_status(
        session=session, order_id=order_id, status=body.status, logger=logger
    )
    return ApiEnvelope(data=to_order_data(order))
