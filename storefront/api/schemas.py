"""
API 请求/响应数据模型（Schema）

使用 Pydantic 进行数据验证和序列化。
对外字段统一使用 camelCase（如 variantId、stockInfo），
内部代码使用 snake_case，二者通过 alias_generator 自动转换。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from storefront.enums import (
    CheckoutMethod,
    OrderStatus,
    ReconcileOutcome,
    TransactionStatus,
)
from storefront.services.inventory_service import Credential, parse_credentials


class CamelModel(BaseModel):
    """对外 JSON 使用 camelCase，同时允许按字段名构造"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenPayload(BaseModel):
    """JWT Token 载荷，sub 为用户 ID"""

    sub: str | None = None


# ============================================================
# 通用响应模型
# ============================================================


class ApiEnvelope(CamelModel):
    """
    API 统一响应格式

    示例响应：
        {"success": true, "code": 0, "message": "success", "data": {...}}
        {"success": false, "code": 404001, "message": "Order not found", "data": null}
    """
    success: bool = True
    code: int = 0
    message: str = "success"
    data: Any | None = None


# ============================================================
# 支付（发起付款、回调）
# ============================================================


class BuyerInfo(CamelModel):
    name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


class PaymentInitiateRequest(CamelModel):
    order_id: int
    payment_method: CheckoutMethod
    buyer_info: BuyerInfo | None = None


class CheckoutData(CamelModel):
    """前端以 POST 表单的形式把 form_fields 提交到 checkout_url"""

    checkout_url: str
    form_fields: dict[str, str]
    order_id: int
    invoice_number: str


class WebhookAck(CamelModel):
    """支付回调处理结果"""

    success: bool = True
    message: str
    outcome: ReconcileOutcome
    duplicate: bool = False
    order_id: int
    invoice_number: str
    transaction_id: int | None = None
    status: OrderStatus  # 处理后的订单状态


# ============================================================
# 库存
# ============================================================


class StockCheckItem(CamelModel):
    variant_id: int
    quantity: int = Field(ge=1, le=100000)


class StockCheckRequest(CamelModel):
    items: list[StockCheckItem]


class StockInfoData(CamelModel):
    variant_id: int
    variant_name: str
    product_name: str
    required: int
    available: int
    is_sufficient: bool


class StockCheckResponse(CamelModel):
    success: bool = True
    stock_info: list[StockInfoData]


class VariantStockData(CamelModel):
    total: int
    sold: int
    available: int


class InventoryItemData(CamelModel):
    id: int
    name: str
    price: Decimal
    duration_days: int | None = None
    product_id: int
    product_name: str
    stock: VariantStockData


class InventorySummaryData(CamelModel):
    total_items: int
    total_sold: int
    total_available: int
    low_stock_count: int
    out_of_stock_count: int
    low_stock_items: list[InventoryItemData]
    out_of_stock_items: list[InventoryItemData]


class AddUnitsRequest(CamelModel):
    """每个元素一行 "email:password"，空行忽略"""

    units: list[str] = Field(min_length=1)

    @field_validator("units")
    @classmethod
    def _validate_credentials(cls, value: list[str]) -> list[str]:
        parse_credentials(value)
        return value

    def credentials(self) -> list[Credential]:
        return parse_credentials(self.units)


class AddUnitsData(CamelModel):
    added: int
    duplicates: int


# ============================================================
# 订单
# ============================================================


class OrderCreateRequest(CamelModel):
    items: list[StockCheckItem] = Field(min_length=1)
    payment_method: str | None = Field(default=None, max_length=64)


class OrderItemData(CamelModel):
    product_id: int
    variant_id: int
    product_name: str
    variant_name: str
    quantity: int
    price: Decimal


class TransactionData(CamelModel):
    id: int
    amount: Decimal
    status: TransactionStatus
    provider: str
    provider_order_id: str | None = None
    reference: str
    payment_method: str | None = None
    failure_reason: str | None = None
    created_at: datetime


class OrderData(CamelModel):
    id: int
    invoice_number: str
    user_id: int
    total: Decimal
    currency: str
    status: OrderStatus
    payment_method: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderDetailData(OrderData):
    items: list[OrderItemData]
    payment: TransactionData | None = None  # 最新一条流水，代表当前支付状态
    transactions: list[TransactionData] = []


class OrdersData(CamelModel):
    data: list[OrderData]
    count: int
    page: int
    total_pages: int


class OrderStatusUpdateRequest(CamelModel):
    status: OrderStatus


class OrderStatsData(CamelModel):
    total_orders: int
    pending_orders: int
    paid_orders: int
    processing_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: Decimal


# ============================================================
# 商品管理
# ============================================================

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ProductCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None


class ProductUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None


class VariantCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    duration_days: int | None = Field(default=None, ge=1)


class VariantUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    duration_days: int | None = Field(default=None, ge=1)


class VariantData(CamelModel):
    id: int
    product_id: int
    name: str
    price: Decimal
    duration_days: int | None = None
    stock: VariantStockData


class ProductData(CamelModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    price_min: Decimal | None = None  # 无规格时为 null
    price_max: Decimal | None = None
    variants: list[VariantData]
    created_at: datetime
    updated_at: datetime
