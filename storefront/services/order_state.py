"""
订单状态机

每个状态对应一组允许的下一状态，不在集合中的流转一律拒绝。
DELIVERED 和 CANCELLED 是终态，没有任何出边。
"""
from __future__ import annotations

from storefront.api.errors import InvalidTransition
from storefront.enums import OrderStatus

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset(
        {OrderStatus.paid, OrderStatus.processing, OrderStatus.cancelled}
    ),
    OrderStatus.paid: frozenset({OrderStatus.processing, OrderStatus.cancelled}),
    OrderStatus.processing: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.delivered}),
    OrderStatus.delivered: frozenset(),
    OrderStatus.cancelled: frozenset(),
}

# 已支付及之后的非终态，重复的支付成功回调对这些订单不做任何状态变更
PAID_STATES = frozenset({OrderStatus.paid, OrderStatus.processing, OrderStatus.shipped})


def allowed_transitions(status: OrderStatus | str) -> frozenset[OrderStatus]:
    return ORDER_TRANSITIONS[OrderStatus(status)]


def is_terminal(status: OrderStatus | str) -> bool:
    return not allowed_transitions(status)


def is_paid(status: OrderStatus | str) -> bool:
    return OrderStatus(status) in PAID_STATES


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    return OrderStatus(target) in allowed_transitions(current)


def ensure_transition(current: OrderStatus | str, target: OrderStatus | str) -> OrderStatus:
    """
    校验状态流转是否合法

    Returns:
        目标状态（枚举）

    Raises:
        InvalidTransition: 流转不在状态机允许的范围内
    """
    current, target = OrderStatus(current), OrderStatus(target)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)
    return target
