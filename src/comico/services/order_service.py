"""
订单服务 - 印刷下单（支付为模拟流程）
"""
import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import Session, select

from comico.core import get_logger
from comico.core.database import engine
from comico.models.comic_record import ComicRecord
from comico.models.order_record import OrderRecord

logger = get_logger(__name__)

# 套餐: 价格 / 印刷页数
PLANS: dict[str, dict] = {
    "Starter Comic": {"price": 24.99, "pages": 20},
    "Pro Comic": {"price": 49.99, "pages": 32},
    "Ultimate Comic": {"price": 79.99, "pages": 48},
}

ORDERABLE_STATUSES = {"generated", "partial"}


class OrderService:
    """订单服务"""

    def checkout(
        self,
        user_id: str,
        comic_id: str,
        plan: str,
        email: str,
        shipping: Optional[dict] = None,
    ) -> OrderRecord:
        """
        下单

        校验套餐和漫画状态，创建已支付订单并把漫画标记为 ordered
        """
        if plan not in PLANS:
            raise ValueError(f"未知套餐: {plan}")
        if not email:
            raise ValueError("请填写联系邮箱")
        shipping = shipping or {}

        with Session(engine) as session:
            comic = session.get(ComicRecord, comic_id)
            if not comic:
                raise LookupError(f"漫画不存在: {comic_id}")
            if comic.user_id != user_id:
                raise PermissionError("只能为自己的漫画下单")
            if comic.status not in ORDERABLE_STATUSES:
                raise ValueError(f"漫画当前状态不能下单: {comic.status}")

            order = OrderRecord(
                user_id=user_id,
                comic_id=comic_id,
                plan=plan,
                amount=PLANS[plan]["price"],
                pages=PLANS[plan]["pages"],
                email=email,
                first_name=shipping.get("first_name", ""),
                last_name=shipping.get("last_name", ""),
                street=shipping.get("street", ""),
                city=shipping.get("city", ""),
                state=shipping.get("state", ""),
                zip_code=shipping.get("zip_code", ""),
                # 模拟支付直接成功
                payment_status="completed",
                payment_reference=f"mock_{uuid.uuid4().hex[:16]}",
            )
            session.add(order)

            comic.status = "ordered"
            comic.selected_plan = plan
            comic.updated_at = datetime.now()
            session.add(comic)

            session.commit()
            session.refresh(order)
            logger.info(f"订单创建成功: order_id={order.id}, comic_id={comic_id}, plan={plan}")
            return order

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        """获取订单"""
        with Session(engine) as session:
            return session.get(OrderRecord, order_id)

    def list_by_user(self, user_id: str) -> list[OrderRecord]:
        """获取用户订单，最新的在前"""
        with Session(engine) as session:
            statement = select(OrderRecord).where(
                OrderRecord.user_id == user_id
            ).order_by(OrderRecord.created_at.desc())
            return list(session.exec(statement).all())


# 全局单例
_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    """获取订单服务单例"""
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service
