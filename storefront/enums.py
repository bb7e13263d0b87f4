"""
枚举类型定义模块

所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
枚举值使用大写字符串，与数据库中存储的值和支付网关的约定保持一致。

注意：从数据库读回的状态是普通字符串，
作为字典键或集合成员比较前需要先转换，例如 OrderStatus(order.status)。
"""
from enum import Enum


class UserRole(str, Enum):
    """
    用户角色枚举

    - user: 普通顾客
    - admin: 管理员（可访问 /admin 接口）
    """
    user = "USER"
    admin = "ADMIN"


class OrderStatus(str, Enum):
    """
    订单状态枚举

    合法的状态流转见 storefront.services.order_state。
    - pending: 待支付
    - paid: 已支付
    - processing: 处理中
    - shipped: 已发货
    - delivered: 已交付（终态）
    - cancelled: 已取消（终态）
    """
    pending = "PENDING"
    paid = "PAID"
    processing = "PROCESSING"
    shipped = "SHIPPED"
    delivered = "DELIVERED"
    cancelled = "CANCELLED"


class CheckoutMethod(str, Enum):
    """发起付款时选择的支付方式（CARD 不向网关传 payment_method）"""

    bank_transfer = "BANK_TRANSFER"
    card = "CARD"
    napas_bank_transfer = "NAPAS_BANK_TRANSFER"


class TransactionStatus(str, Enum):
    """
    支付流水状态枚举

    - success: 支付成功
    - failed: 支付失败（包括金额不符、状态流转非法）
    - pending: 等待中
    """
    success = "SUCCESS"
    failed = "FAILED"
    pending = "PENDING"


class PaymentProvider(str, Enum):
    sepay = "SEPAY"


class PaymentOutcome(str, Enum):
    """
    支付结果（内部三态）

    支付网关上报的各种状态字符串都会映射到这三个值之一。
    """
    paid = "PAID"
    failed = "FAILED"
    pending = "PENDING"


class ReconcileOutcome(str, Enum):
    """
    对账处理结果

    - paid: 订单从 PENDING 变为 PAID
    - already_paid: 订单已支付，本次回调不改变订单状态
    - duplicate: 相同回调已处理过，无任何写入
    - amount_mismatch: 金额不符，记录失败流水，订单不变
    - payment_failed: 网关报告支付失败，记录失败流水，订单不变
    - pending: 网关报告处理中，记录待定流水
    """
    paid = "paid"
    already_paid = "already_paid"
    duplicate = "duplicate"
    amount_mismatch = "amount_mismatch"
    payment_failed = "payment_failed"
    pending = "pending"
