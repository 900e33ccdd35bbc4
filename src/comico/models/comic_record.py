"""
漫画记录数据模型
"""
import json
import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


COMIC_STATUSES = ("draft", "generating", "generated", "partial", "failed", "ordered")


class ComicRecord(SQLModel, table=True):
    """
    漫画记录模型

    保存用户输入、生成结果和生命周期状态
    """
    __tablename__ = "comics"

    # 主键
    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True,
        max_length=32,
    )
    user_id: str = Field(index=True, description="用户ID")

    # 用户输入
    title: Optional[str] = Field(default=None, description="漫画标题")
    story: str = Field(description="用户原始故事")
    photos: str = Field(default="[]", description="照片URL列表JSON")
    selected_plan: str = Field(default="Pro Comic", description="印刷套餐")
    art_style: str = Field(default="comic", description="画风")
    requested_panels: Optional[int] = Field(default=None, description="用户指定分格数")

    # 生成结果（GeneratedComic JSON）
    generated_comic_data: Optional[str] = Field(default=None, description="生成结果JSON")

    # 状态
    status: str = Field(
        default="draft",
        description="状态: draft/generating/generated/partial/failed/ordered"
    )
    error_message: Optional[str] = Field(default=None, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")
    updated_at: datetime = Field(default_factory=datetime.now, description="更新时间")

    @property
    def photo_urls(self) -> list[str]:
        try:
            urls = json.loads(self.photos or "[]")
        except json.JSONDecodeError:
            return []
        return [u for u in urls if isinstance(u, str)]
