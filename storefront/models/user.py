"""
用户模型模块
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from storefront.enums import UserRole

from .base import utc_now


class User(SQLModel, table=True):
    """
    用户模型

    字段说明：
    - id: 主键（自增）
    - email: 邮箱（唯一）
    - name: 显示名称
    - role: 角色（USER / ADMIN），管理接口只允许 ADMIN 访问
    - created_at / updated_at: 时间戳
    """
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    name: str | None = Field(default=None, max_length=128)
    role: UserRole = Field(
        default=UserRole.user, sa_column=Column(String(16), nullable=False)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
