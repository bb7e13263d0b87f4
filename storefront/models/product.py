"""
商品模型模块

商品（Product）下有多个规格（Variant），每个规格有独立的价格和库存。
库存以库存单元（InventoryUnit）的形式存在：每个单元是一份可交付的内容
（例如一个账号），可用库存 = 未售出的库存单元数量。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlmodel import Field, SQLModel

from .base import utc_now


class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    slug: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Variant(SQLModel, table=True):
    """
    商品规格模型

    字段说明：
    - product_id: 所属商品（商品删除时级联删除）
    - name: 规格名称（如 "1 个月"）
    - price: 单价（Decimal 保证精度）
    - duration_days: 有效期天数（订阅类商品，可选）
    """
    __tablename__ = "variants"
    id: int | None = Field(default=None, primary_key=True)
    product_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    name: str = Field(max_length=255)
    price: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    duration_days: int | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class InventoryUnit(SQLModel, table=True):
    """
    库存单元模型

    payload 为 AES-256-GCM 加密后的账号凭据（base64），
    密文每次加密都不同，入库去重在 inventory_service 中按解密后的内容完成。
    """
    __tablename__ = "inventory_units"

    id: int | None = Field(default=None, primary_key=True)
    variant_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("variants.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    payload: str = Field(sa_column=Column(Text, nullable=False))
    is_sold: bool = Field(default=False, index=True)
    sold_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
