"""
商品管理路由模块（管理后台）

- GET    /admin/products: 商品列表（含规格与价格区间）
- POST   /admin/products: 创建商品
- GET    /admin/products/{product_id}: 商品详情
- PATCH  /admin/products/{product_id}: 更新商品
- DELETE /admin/products/{product_id}: 删除商品（连同规格和库存单元）
- POST   /admin/products/{product_id}/variants: 创建规格
- PATCH  /admin/variants/{variant_id}: 更新规格
- DELETE /admin/variants/{variant_id}: 删除规格（连同库存单元）

已有订单引用的商品或规格不能删除（409）。
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel
from sqlmodel import Session

from storefront import crud
from storefront.api.deps import CurrentAdmin, InventoryLogger, SessionDep
from storefront.api.errors import (
    ProductNotFound,
    ReferencedByOrders,
    SlugConflict,
    VariantNotFound,
)
from storefront.api.schemas import (
    ApiEnvelope,
    ProductCreateRequest,
    ProductData,
    ProductUpdateRequest,
    VariantCreateRequest,
    VariantData,
    VariantStockData,
    VariantUpdateRequest,
)
from storefront.models import Product, Variant

router = APIRouter(prefix="/admin", tags=["admin"])


def _changes(body: BaseModel, nullable: set[str]) -> dict[str, Any]:
    """PATCH 请求中显式传入的字段；非空列传 null 视为未传"""
    return {
        name: value
        for name, value in body.model_dump(exclude_unset=True).items()
        if value is not None or name in nullable
    }


def _to_variant_data(session: Session, variant: Variant) -> VariantData:
    stock = crud.get_variant_stock(session=session, variant_id=variant.id)  # type: ignore[arg-type]
    return VariantData(
        id=variant.id,  # type: ignore[arg-type]
        product_id=variant.product_id,
        name=variant.name,
        price=variant.price,
        duration_days=variant.duration_days,
        stock=VariantStockData(total=stock.total, sold=stock.sold, available=stock.available),
    )


def _to_product_data(session: Session, product: Product) -> ProductData:
    variants = [
        _to_variant_data(session, v)
        for v in crud.list_product_variants(session=session, product_id=product.id)  # type: ignore[arg-type]
    ]
    prices = [v.price for v in variants]
    return ProductData(
        id=product.id,  # type: ignore[arg-type]
        name=product.name,
        slug=product.slug,
        description=product.description,
        price_min=min(prices) if prices else None,
        price_max=max(prices) if prices else None,
        variants=variants,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _get_product(session: Session, product_id: int) -> Product:
    product = crud.get_product(session=session, product_id=product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _get_variant(session: Session, variant_id: int) -> Variant:
    variant = crud.get_variant(session=session, variant_id=variant_id)
    if variant is None:
        raise VariantNotFound(variant_id)
    return variant


def _ensure_slug_free(session: Session, slug: str, product_id: int | None = None) -> None:
    existing = crud.get_product_by_slug(session=session, slug=slug)
    if existing is not None and existing.id != product_id:
        raise SlugConflict(slug)


@router.get("/products", response_model=ApiEnvelope)
def list_products(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    return ApiEnvelope(
        data=[_to_product_data(session, p) for p in crud.list_products(session=session)]
    )


@router.post("/products", response_model=ApiEnvelope)
def create_product(
    session: SessionDep, _: CurrentAdmin, logger: InventoryLogger, body: ProductCreateRequest
) -> ApiEnvelope:
    """
    创建商品

    请求路径: POST /api/v1/admin/products

    Raises:
        SlugConflict: slug 已被其他商品使用（409002）
    """
    _ensure_slug_free(session, body.slug)
    product = crud.create_product(
        session=session, name=body.name, slug=body.slug, description=body.description
    )
    logger.info("Product %s created with slug %s", product.id, product.slug)
    return ApiEnvelope(data=_to_product_data(session, product))


@router.get("/products/{product_id}", response_model=ApiEnvelope)
def get_product(session: SessionDep, _: CurrentAdmin, product_id: int) -> ApiEnvelope:
    return ApiEnvelope(data=_to_product_data(session, _get_product(session, product_id)))


@router.patch("/products/{product_id}", response_model=ApiEnvelope)
def update_product(
    session: SessionDep,
    _: CurrentAdmin,
    logger: InventoryLogger,
    product_id: int,
    body: ProductUpdateRequest,
) -> ApiEnvelope:
    product = _get_product(session, product_id)
    values = _changes(body, nullable={"description"})
    if "slug" in values:
        _ensure_slug_free(session, values["slug"], product_id)
    product = crud.update_product(session=session, product=product, values=values)
    logger.info("Product %s updated: %s", product_id, sorted(values))
    return ApiEnvelope(data=_to_product_data(session, product))


@router.delete("/products/{product_id}", response_model=ApiEnvelope)
def delete_product(
    session: SessionDep, _: CurrentAdmin, logger: InventoryLogger, product_id: int
) -> ApiEnvelope:
    """
    删除商品，规格和库存单元一并删除

    Raises:
        ReferencedByOrders: 商品已有订单（409003）
    """
    product = _get_product(session, product_id)
    if crud.count_order_items(session=session, product_id=product_id):
        raise ReferencedByOrders("Cannot delete product with existing orders")
    variants = len(crud.list_product_variants(session=session, product_id=product_id))
    crud.delete_product(session=session, product=product)
    logger.info("Product %s deleted with %d variant(s)", product_id, variants)
    return ApiEnvelope(data={"deleted": True, "variants": variants})


@router.post("/products/{product_id}/variants", response_model=ApiEnvelope)
def create_variant(
    session: SessionDep,
    _: CurrentAdmin,
    logger: InventoryLogger,
    product_id: int,
    body: VariantCreateRequest,
) -> ApiEnvelope:
    _get_product(session, product_id)
    variant = crud.create_variant(
        session=session,
        product_id=product_id,
        name=body.name,
        price=body.price,
        duration_days=body.duration_days,
    )
    logger.info("Variant %s created for product %s", variant.id, product_id)
    return ApiEnvelope(data=_to_variant_data(session, variant))


@router.patch("/variants/{variant_id}", response_model=ApiEnvelope)
def update_variant(
    session: SessionDep,
    _: CurrentAdmin,
    logger: InventoryLogger,
    variant_id: int,
    body: VariantUpdateRequest,
) -> ApiEnvelope:
    """已下单的订单项保存了价格快照，改价不影响历史订单"""
    variant = _get_variant(session, variant_id)
    values = _changes(body, nullable={"duration_days"})
    variant = crud.update_variant(session=session, variant=variant, values=values)
    logger.info("Variant %s updated: %s", variant_id, sorted(values))
    return ApiEnvelope(data=_to_variant_data(session, variant))


@router.delete("/variants/{variant_id}", response_model=ApiEnvelope)
def delete_variant(
    session: SessionDep, _: CurrentAdmin, logger: InventoryLogger, variant_id: int
) -> ApiEnvelope:
    variant = _get_variant(session, variant_id)
    if crud.count_order_items(session=session, variant_id=variant_id):
        raise ReferencedByOrders("Cannot delete variant with existing orders")
    crud.delete_variant(session=session, variant=variant)
    logger.info("Variant %s deleted", variant_id)
    return ApiEnvelope(data={"deleted": True})
