"""
库存检查服务

只读操作：对每一行 (variant_id, quantity) 统计未售出的库存单元，
返回是否足够。每一行独立计算，同一规格出现多次时各行看到的是同一个可用数量，
调用方在真正占用库存时需要重新检查。
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlmodel import Session

from storefront import crud
from storefront.api.errors import VariantNotFound
from storefront.models import Product


@dataclass
class StockLine:
    variant_id: int
    quantity: int


@dataclass
class StockInfo:
    variant_id: int
    variant_name: str
    product_name: str
    required: int
    available: int
    is_sufficient: bool


def check_stock(
    *, session: Session, items: Iterable[StockLine], logger: logging.Logger
) -> list[StockInfo]:
    """
    检查一批规格的库存

    任意一个规格不存在时整批失败，不返回部分结果。

    Raises:
        VariantNotFound: 规格不存在
    """
    result: list[StockInfo] = []
    for item in items:
        variant = crud.get_variant(session=session, variant_id=item.variant_id)
        if variant is None:
            logger.warning("Stock check aborted, variant %s not found", item.variant_id)
            raise VariantNotFound(item.variant_id)
        product = session.get(Product, variant.product_id)
        available = crud.count_available_units(session=session, variant_id=item.variant_id)
        result.append(
            StockInfo(
                variant_id=item.variant_id,
                variant_name=variant.name,
                product_name=product.name if product else "",
                required=item.quantity,
                available=available,
                is_sufficient=available >= item.quantity,
            )
        )
    logger.info(
        "Stock check for %d line(s), %d insufficient",
        len(result),
        sum(1 for info in result if not info.is_sufficient),
    )
    return result
