"""
数据库模型定义模块

模型按功能拆分：
- user.py: 用户模型
- product.py: 商品、规格、库存单元
- order.py: 订单和订单项
- transaction.py: 支付流水
"""
from sqlmodel import SQLModel

from .base import utc_now
from .order import Order, OrderItem
from .product import InventoryUnit, Product, Variant
from .transaction import Transaction
from .user import User

__all__ = [
    "SQLModel",
    "utc_now",
    "User",
    "Product",
    "Variant",
    "InventoryUnit",
    "Order",
    "OrderItem",
    "Transaction",
]
