"""
日志配置模块

应用启动时调用 setup_logging 一次。
业务组件（支付回调、对账、库存检查）不直接获取全局 logger，
而是通过 storefront.api.deps 中的依赖注入拿到 logger。
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

PAYMENTS_LOGGER = "storefront.payments"
INVENTORY_LOGGER = "storefront.inventory"
ORDERS_LOGGER = "storefront.orders"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
