"""支付流水查询"""
from sqlmodel import Session, select

from storefront.models import Transaction


def get_by_reference(*, session: Session, reference: str) -> Transaction | None:
    """根据幂等键查询流水"""
    return session.exec(select(Transaction).where(Transaction.reference == reference)).first()


def get_latest_for_order(*, session: Session, order_id: int) -> Transaction | None:
    """获取订单最新的一条流水（代表当前支付状态）"""
    statement = (
        select(Transaction)
        .where(Transaction.order_id == order_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    return session.exec(statement).first()


def list_for_order(*, session: Session, order_id: int) -> list[Transaction]:
    statement = (
        select(Transaction)
        .where(Transaction.order_id == order_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    return list(session.exec(statement).all())
