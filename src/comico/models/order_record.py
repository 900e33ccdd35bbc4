"""
订单记录模型（模拟支付）
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional
from sqlmodel import Field, SQLModel


def _estimated_delivery() -> datetime:
    return datetime.now() + timedelta(days=7)


class OrderRecord(SQLModel, table=True):
    """印刷订单表"""

    __tablename__ = "orders"

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True, max_length=32)
    user_id: str = Field(index=True, description="用户ID")
    comic_id: str = Field(foreign_key="comics.id", description="关联的漫画ID")

    # 套餐
    plan: str = Field(description="套餐名称")
    amount: float = Field(description="金额")
    pages: int = Field(default=0, description="印刷页数")

    # 收货信息
    email: str = Field(description="联系邮箱")
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    street: str = Field(default="")
    city: str = Field(default="")
    state: str = Field(default="")
    zip_code: str = Field(default="")

    # 支付状态
    payment_status: str = Field(default="pending", description="状态: pending/completed/failed")
    payment_reference: Optional[str] = Field(default=None, description="支付流水号")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    estimated_delivery: datetime = Field(default_factory=_estimated_delivery)
