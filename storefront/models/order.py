"""
订单模型模块

订单拥有订单项（OrderItem）和支付流水（Transaction），删除订单时级联删除。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlmodel import Field, SQLModel

from storefront.enums import OrderStatus

from .base import utc_now


class Order(SQLModel, table=True):
    """
    订单模型

    字段说明：
    - id: 主键
    - user_id: 下单用户（外键）
    - invoice_number: 订单号（唯一），支付网关回调通过它定位订单
    - total: 订单总额（Decimal 保证精度）
    - currency: 货币类型（默认 VND）
    - status: 订单状态，只能按 order_state 中定义的状态机流转
    - payment_method: 支付方式（回调上报后写入）
    - created_at / updated_at: 时间戳
    """
    __tablename__ = "orders"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )

    invoice_number: str = Field(
        sa_column=Column(String(64), unique=True, index=True, nullable=False)
    )
    total: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    currency: str = Field(default="VND", max_length=8)

    status: OrderStatus = Field(
        default=OrderStatus.pending, sa_column=Column(String(16), index=True, nullable=False)
    )
    payment_method: str | None = Field(default=None, max_length=64)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class OrderItem(SQLModel, table=True):
    """
    订单项模型

    price / product_name / variant_name 是下单时的快照，
    之后商品目录的改动不影响已生成的订单。
    """
    __tablename__ = "order_items"
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    product_id: int = Field(
        sa_column=Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    )
    variant_id: int = Field(
        sa_column=Column(Integer, ForeignKey("variants.id"), index=True, nullable=False)
    )
    quantity: int = Field(default=1)
    price: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    product_name: str = Field(max_length=255)
    variant_name: str = Field(max_length=255)
