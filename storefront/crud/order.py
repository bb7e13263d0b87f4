"""订单 CRUD 操作"""
from decimal import Decimal

from sqlalchemy import or_
from sqlmodel import Session, func, select

from storefront.enums import OrderStatus
from storefront.models import Order, OrderItem, User

REVENUE_STATUSES = (OrderStatus.processing, OrderStatus.shipped, OrderStatus.delivered)


def get_by_invoice_number(*, session: Session, invoice_number: str) -> Order | None:
    """根据订单号查询订单"""
    return session.exec(select(Order).where(Order.invoice_number == invoice_number)).first()


def get_items(*, session: Session, order_id: int) -> list[OrderItem]:
    statement = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
    return list(session.exec(statement).all())


def list_orders(
    *,
    session: Session,
    page: int = 1,
    limit: int = 20,
    status: OrderStatus | None = None,
    search: str | None = None,
    user_id: int | None = None,
) -> tuple[list[Order], int]:
    """
    分页查询订单，按创建时间倒序

    search 对订单号、用户邮箱、用户名称做不区分大小写的模糊匹配。

    Returns:
        (当前页订单, 总数)
    """
    conditions = []
    if status is not None:
        conditions.append(Order.status == status.value)
    if user_id is not None:
        conditions.append(Order.user_id == user_id)
    if search:
        pattern = f"%{search.lower()}%"
        conditions.append(
            or_(
                func.lower(Order.invoice_number).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.name).like(pattern),
            )
        )

    count_stmt = (
        select(func.count())
        .select_from(Order)
        .join(User, User.id == Order.user_id)
        .where(*conditions)
    )
    count = session.exec(count_stmt).one()

    stmt = (
        select(Order)
        .join(User, User.id == Order.user_id)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(session.exec(stmt).all()), count


def get_stats(*, session: Session) -> dict[str, int | Decimal]:
    """订单统计：总数、各状态数量、营收（处理中/已发货/已交付订单的总额）"""
    rows = session.exec(select(Order.status, func.count()).group_by(Order.status)).all()
    by_status = {OrderStatus(status): count for status, count in rows}

    revenue = session.exec(
        select(func.coalesce(func.sum(Order.total), 0)).where(
            Order.status.in_([s.value for s in REVENUE_STATUSES])  # type: ignore[union-attr]
        )
    ).one()

    stats: dict[str, int | Decimal] = {"total_orders": sum(by_status.values())}
    for status in OrderStatus:
        stats[f"{status.name}_orders"] = by_status.get(status, 0)
    stats["total_revenue"] = Decimal(str(revenue))
    return stats
