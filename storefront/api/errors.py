"""
自定义异常模块

所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器，
转换为 {"success": false, "code": ..., "message": ...} 格式的响应。

错误码约定：HTTP 状态码 * 1000 + 序号。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息
    - status_code: HTTP 状态码

    使用示例：
        raise AppError(code=404001, message="Order not found", status_code=404)
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class MalformedPayload(AppError):
    def __init__(self, message: str = "Malformed payload") -> None:
        super().__init__(code=400001, message=message, status_code=400)


class InsufficientStock(AppError):
    def __init__(self, message: str = "Insufficient stock") -> None:
        super().__init__(code=400101, message=message, status_code=400)


class InvalidSignature(AppError):
    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(code=401101, message=message, status_code=401)


class ClientIPUnresolvable(AppError):
    """请求头中找不到客户端 IP"""

    def __init__(self) -> None:
        super().__init__(
            code=403101,
            message="Unable to determine client IP from request headers",
            status_code=403,
        )


class Forbidden(AppError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(code=403001, message=message, status_code=403)


class OrderNotFound(AppError):
    def __init__(self, reference: str | int) -> None:
        super().__init__(code=404001, message=f"Order not found: {reference}", status_code=404)
        self.reference = reference


class VariantNotFound(AppError):
    """库存检查时找不到规格，整批请求失败"""

    def __init__(self, variant_id: int) -> None:
        super().__init__(code=404002, message=f"Variant not found: {variant_id}", status_code=404)
        self.variant_id = variant_id


class InvalidTransition(AppError):
    """订单状态流转不在状态机允许的范围内"""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=409001,
            message=f"Invalid order status transition: {current} -> {target}",
            status_code=409,
        )
        self.current = current
        self.target = target


class ProductNotFound(AppError):
    def __init__(self, product_id: int) -> None:
        super().__init__(code=404003, message=f"Product not found: {product_id}", status_code=404)


class SlugConflict(AppError):
    def __init__(self, slug: str) -> None:
        super().__init__(code=409002, message=f"Slug already exists: {slug}", status_code=409)
        self.slug = slug


class ReferencedByOrders(AppError):
    """商品或规格已有订单引用，不能删除"""

    def __init__(self, message: str) -> None:
        super().__init__(code=409003, message=message, status_code=409)


class GatewayNotConfigured(AppError):
    def __init__(self, message: str = "Payment gateway not configured") -> None:
        super().__init__(code=500102, message=message, status_code=500)
