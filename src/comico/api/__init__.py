"""
API 路由模块
"""
from fastapi import APIRouter
from .photos import router as photos_router
from .stories import router as stories_router
from .comics import router as comics_router
from .orders import router as orders_router

# 创建主路由
api_router = APIRouter(prefix="/api")

api_router.include_router(photos_router)
api_router.include_router(stories_router)
api_router.include_router(comics_router)
# /orders/plans 在 orders_router 内部先于 /orders/{order_id} 注册
api_router.include_router(orders_router)

__all__ = ["api_router"]
