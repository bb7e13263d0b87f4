"""
支付流水模型模块

每次支付回调追加一条流水。同一订单可以有多条流水，
按 created_at 最新的一条代表当前支付状态。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlmodel import Field, SQLModel

from storefront.enums import PaymentProvider, TransactionStatus

from .base import utc_now


class Transaction(SQLModel, table=True):
    """
    支付流水模型

    字段说明：
    - order_id: 所属订单（外键，级联删除）
    - amount: 网关上报的金额
    - status: 流水状态（SUCCESS / FAILED / PENDING）
    - provider: 支付渠道
    - provider_order_id: 网关侧的交易 ID
    - reference: 幂等键（唯一），同一回调重复投递时据此去重
    - failure_reason: 失败原因（如 "amount mismatch"）
    - gateway_data: 回调原始数据（JSON），用于审计
    """
    __tablename__ = "transactions"
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )
    status: TransactionStatus = Field(sa_column=Column(String(16), nullable=False))
    provider: PaymentProvider = Field(
        default=PaymentProvider.sepay, sa_column=Column(String(16), nullable=False)
    )
    provider_order_id: str | None = Field(default=None, max_length=128)
    reference: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    payment_method: str | None = Field(default=None, max_length=64)
    failure_reason: str | None = Field(default=None, max_length=255)
    gateway_data: dict | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
