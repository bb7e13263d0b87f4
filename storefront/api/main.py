"""
API 路由聚合模块

路由模块说明：
- payment: SePay 支付回调（IPN、银行转账）
- orders: 用户侧订单（创建、查询）
- admin: 管理后台（库存、订单管理）
- products: 管理后台（商品、规格管理）
- utils: 工具相关（健康检查）
"""
from fastapi import APIRouter

from storefront.api.routes import admin, orders, payment, products, utils

api_router = APIRouter()

# 每个模块的路径前缀在各自的 router 中定义
api_router.include_router(payment.router)  # /payment/*, /webhooks/*
api_router.include_router(orders.router)  # /orders/*
api_router.include_router(admin.router)  # /admin/*
api_router.include_router(products.router)  # /admin/products/*, /admin/variants/*
api_router.include_router(utils.router)  # /utils/*
