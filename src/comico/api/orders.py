"""
订单 API - 套餐、下单、订单查询
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from comico.api.errors import to_http_exception
from comico.models.order_record import OrderRecord
from comico.services.order_service import PLANS, get_order_service

router = APIRouter(prefix="/orders", tags=["订单"])


class ShippingAddress(BaseModel):
    """收货地址"""
    first_name: str = ""
    last_name: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""


class CheckoutRequest(BaseModel):
    """下单请求"""
    user_id: str
    comic_id: str
    plan: str = "Pro Comic"
    email: str
    shipping_address: Optional[ShippingAddress] = None


def _order_to_response(order: OrderRecord) -> dict:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "comic_id": order.comic_id,
        "plan": order.plan,
        "amount": order.amount,
        "pages": order.pages,
        "email": order.email,
        "shipping_address": {
            "first_name": order.first_name,
            "last_name": order.last_name,
            "street": order.street,
            "city": order.city,
            "state": order.state,
            "zip_code": order.zip_code,
        },
        "payment_status": order.payment_status,
        "payment_reference": order.payment_reference,
        "created_at": order.created_at.isoformat(),
        "estimated_delivery": order.estimated_delivery.isoformat(),
    }


@router.get("/plans")
def list_plans():
    """获取套餐列表"""
    return {
        "items": [
            {"name": name, "price": info["price"], "pages": info["pages"]}
            for name, info in PLANS.items()
        ]
    }


@router.post("/checkout")
def checkout(request: CheckoutRequest):
    """下单（模拟支付）"""
    shipping = request.shipping_address.model_dump() if request.shipping_address else {}
    try:
        order = get_order_service().checkout(
            user_id=request.user_id,
            comic_id=request.comic_id,
            plan=request.plan,
            email=request.email,
            shipping=shipping,
        )
    except (LookupError, PermissionError, ValueError) as e:
        raise to_http_exception(e)
    return _order_to_response(order)


@router.get("")
def list_orders(user_id: str):
    """获取用户订单"""
    orders = get_order_service().list_by_user(user_id)
    return {
        "items": [_order_to_response(o) for o in orders],
        "total": len(orders),
    }


@router.get("/{order_id}")
def get_order(order_id: str):
    """获取订单详情"""
    order = get_order_service().get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="订单不存在")
    return _order_to_response(order)
