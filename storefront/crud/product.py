"""商品、规格与库存 CRUD 操作"""
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import delete
from sqlmodel import Session, func, select

from storefront.models import InventoryUnit, OrderItem, Product, Variant, utc_now


@dataclass
class VariantStock:
    total: int
    sold: int
    available: int


def get_variant(*, session: Session, variant_id: int) -> Variant | None:
    return session.get(Variant, variant_id)


def count_available_units(*, session: Session, variant_id: int) -> int:
    """统计规格下未售出的库存单元数量"""
    statement = (
        select(func.count())
        .select_from(InventoryUnit)
        .where(InventoryUnit.variant_id == variant_id, InventoryUnit.is_sold == False)  # noqa: E712
    )
    return session.exec(statement).one()


def get_variant_stock(*, session: Session, variant_id: int) -> VariantStock:
    """获取规格库存：总数、已售、可用"""
    total = session.exec(
        select(func.count())
        .select_from(InventoryUnit)
        .where(InventoryUnit.variant_id == variant_id)
    ).one()
    sold = session.exec(
        select(func.count())
        .select_from(InventoryUnit)
        .where(InventoryUnit.variant_id == variant_id, InventoryUnit.is_sold == True)  # noqa: E712
    ).one()
    return VariantStock(total=total, sold=sold, available=total - sold)


def list_inventory(*, session: Session) -> list[tuple[Variant, Product, VariantStock]]:
    """列出所有规格及其库存，按商品名称排序"""
    statement = (
        select(Variant, Product)
        .join(Product, Product.id == Variant.product_id)
        .order_by(Product.name.asc(), Variant.id.asc())
    )
    return [
        (variant, product, get_variant_stock(session=session, variant_id=variant.id))
        for variant, product in session.exec(statement).all()
    ]


def list_unit_payloads(*, session: Session, variant_id: int) -> list[str]:
    statement = select(InventoryUnit.payload).where(InventoryUnit.variant_id == variant_id)
    return list(session.exec(statement).all())


def add_inventory_units(*, session: Session, variant_id: int, payloads: list[str]) -> int:
    """批量写入（已加密的）库存单元"""
    for payload in payloads:
        session.add(InventoryUnit(variant_id=variant_id, payload=payload))
    session.commit()
    return len(payloads)


# ============================================================
# 商品与规格管理
# ============================================================


def get_product(*, session: Session, product_id: int) -> Product | None:
    return session.get(Product, product_id)


def get_product_by_slug(*, session: Session, slug: str) -> Product | None:
    return session.exec(select(Product).where(Product.slug == slug)).first()


def list_products(*, session: Session) -> list[Product]:
    statement = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
    return list(session.exec(statement).all())


def list_product_variants(*, session: Session, product_id: int) -> list[Variant]:
    statement = (
        select(Variant)
        .where(Variant.product_id == product_id)
        .order_by(Variant.created_at.asc(), Variant.id.asc())
    )
    return list(session.exec(statement).all())


def create_product(
    *, session: Session, name: str, slug: str, description: str | None = None
) -> Product:
    product = Product(name=name, slug=slug, description=description)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def update_product(*, session: Session, product: Product, values: dict) -> Product:
    """只更新传入的字段"""
    for name, value in values.items():
        setattr(product, name, value)
    product.updated_at = utc_now()
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def count_order_items(
    *, session: Session, product_id: int | None = None, variant_id: int | None = None
) -> int:
    statement = select(func.count()).select_from(OrderItem)
    if product_id is not None:
        statement = statement.where(OrderItem.product_id == product_id)
    if variant_id is not None:
        statement = statement.where(OrderItem.variant_id == variant_id)
    return session.exec(statement).one()


def delete_product(*, session: Session, product: Product) -> None:
    """
    删除商品及其全部规格和库存单元

    规格和库存单元在同一事务中显式删除。
    """
    variant_ids = select(Variant.id).where(Variant.product_id == product.id)
    session.exec(delete(InventoryUnit).where(InventoryUnit.variant_id.in_(variant_ids)))  # type: ignore[call-overload, union-attr]
    session.exec(delete(Variant).where(Variant.product_id == product.id))  # type: ignore[call-overload]
    session.delete(product)
    session.commit()


def create_variant(
    *,
    session: Session,
    product_id: int,
    name: str,
    price: Decimal,
    duration_days: int | None = None,
) -> Variant:
    variant = Variant(product_id=product_id, name=name, price=price, duration_days=duration_days)
    session.add(variant)
    session.commit()
    session.refresh(variant)
    return variant


def update_variant(*, session: Session, variant: Variant, values: dict) -> Variant:
    for name, value in values.items():
        setattr(variant, name, value)
    variant.updated_at = utc_now()
    session.add(variant)
    session.commit()
    session.refresh(variant)
    return variant


def delete_variant(*, session: Session, variant: Variant) -> None:
    session.exec(delete(InventoryUnit).where(InventoryUnit.variant_id == variant.id))  # type: ignore[call-overload]
    session.delete(variant)
    session.commit()
