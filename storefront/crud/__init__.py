"""CRUD 操作模块"""
from .order import (
    get_by_invoice_number as get_order_by_invoice_number,
)
from .order import (
    get_items as get_order_items,
)
from .order import (
    get_stats as get_order_stats,
)
from .order import (
    list_orders,
)
from .product import (
    add_inventory_units,
    count_available_units,
    count_order_items,
    create_product,
    create_variant,
    delete_product,
    delete_variant,
    get_product,
    get_product_by_slug,
    get_variant,
    get_variant_stock,
    list_inventory,
    list_product_variants,
    list_products,
    list_unit_payloads,
    update_product,
    update_variant,
)
from .transaction import (
    get_by_reference as get_transaction_by_reference,
)
from .transaction import (
    get_latest_for_order as get_latest_transaction,
)
from .transaction import (
    list_for_order as list_order_transactions,
)
from .user import (
    create as create_user,
)
from .user import (
    get_by_email as get_user_by_email,
)

__all__ = [
    "get_order_by_invoice_number",
    "get_order_items",
    "get_order_stats",
    "list_orders",
    "add_inventory_units",
    "count_available_units",
    "count_order_items",
    "create_product",
    "create_variant",
    "delete_product",
    "delete_variant",
    "get_product",
    "get_product_by_slug",
    "get_variant",
    "get_variant_stock",
    "list_inventory",
    "list_product_variants",
    "list_products",
    "list_unit_payloads",
    "update_product",
    "update_variant",
    "get_transaction_by_reference",
    "get_latest_transaction",
    "list_order_transactions",
    "create_user",
    "get_user_by_email",
]
