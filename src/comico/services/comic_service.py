"""
漫画记录服务 - 记录的增删改查与生命周期状态
"""
import json
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlmodel import Session, select

from comico.core import get_logger
from comico.core.database import engine
from comico.core.exceptions import StorageError
from comico.models.comic_content import ComicPanel, GeneratedComic
from comico.models.comic_record import COMIC_STATUSES, ComicRecord

logger = get_logger(__name__)

# 允许整体覆盖的字段
_UPDATABLE_FIELDS = {
    "title",
    "story",
    "photos",
    "selected_plan",
    "art_style",
    "requested_panels",
    "generated_comic_data",
    "status",
    "error_message",
}


class ComicService:
    """漫画记录服务"""

    def create_comic(
        self,
        user_id: str,
        story: str,
        photo_urls: Optional[list[str]] = None,
        selected_plan: str = "Pro Comic",
        art_style: str = "comic",
        requested_panels: Optional[int] = None,
    ) -> ComicRecord:
        """创建草稿记录"""
        if not user_id:
            raise ValueError("缺少用户ID")
        if not story or not story.strip():
            raise ValueError("请输入故事内容")

        with Session(engine) as session:
            record = ComicRecord(
                user_id=user_id,
                story=story,
                photos=json.dumps(photo_urls or [], ensure_ascii=False),
                selected_plan=selected_plan,
                art_style=art_style,
                requested_panels=requested_panels,
                status="draft",
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            logger.info(f"创建漫画记录: id={record.id}, user_id={user_id}")
            return record

    def get_comic(self, comic_id: str) -> Optional[ComicRecord]:
        """获取漫画记录"""
        with Session(engine) as session:
            return session.get(ComicRecord, comic_id)

    def list_by_user(self, user_id: str) -> list[ComicRecord]:
        """获取用户的全部漫画，最新的在前"""
        with Session(engine) as session:
            statement = select(ComicRecord).where(
                ComicRecord.user_id == user_id
            ).order_by(ComicRecord.created_at.desc())
            return list(session.exec(statement).all())

    def update_comic(self, comic_id: str, **updates) -> Optional[ComicRecord]:
        """
        部分更新

        只覆盖传入的字段，后写入者生效
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"不支持更新的字段: {', '.join(sorted(unknown))}")
        status = updates.get("status")
        if status is not None and status not in COMIC_STATUSES:
            raise ValueError(f"未知状态: {status}")

        with Session(engine) as session:
            record = session.get(ComicRecord, comic_id)
            if not record:
                return None
            for field, value in updates.items():
                if field == "photos" and isinstance(value, list):
                    value = json.dumps(value, ensure_ascii=False)
                setattr(record, field, value)
            record.updated_at = datetime.now()
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def claim_generation(self, comic_id: str) -> bool:
        """
        原子地把记录置为 generating

        已在生成中或记录不存在时返回 False，并发请求只有一个能成功
        """
        statement = (
            update(ComicRecord)
            .where(ComicRecord.id == comic_id, ComicRecord.status != "generating")
            .values(status="generating", error_message=None, updated_at=datetime.now())
        )
        with Session(engine) as session:
            result = session.execute(statement)
            session.commit()
            return result.rowcount == 1

    def save_generated_comic(self, comic_id: str, comic: GeneratedComic) -> Optional[ComicRecord]:
        """整体替换生成结果，并按分格成败更新状态"""
        status = "generated" if comic.error_count == 0 else "partial"
        return self.update_comic(
            comic_id,
            title=comic.title,
            generated_comic_data=comic.to_json(),
            status=status,
            error_message=None,
        )

    def load_generated_comic(self, record: ComicRecord) -> Optional[GeneratedComic]:
        if not record.generated_comic_data:
            return None
        return GeneratedComic.from_json(record.generated_comic_data)

    def replace_panel(self, comic_id: str, panel: ComicPanel) -> Optional[GeneratedComic]:
        """替换某一格，生成一个新的 GeneratedComic 覆盖旧数据"""
        record = self.get_comic(comic_id)
        if not record:
            return None
        current = self.load_generated_comic(record)
        if current is None:
            raise ValueError("漫画尚未生成")

        panels = [
            panel if p.panel_number == panel.panel_number else p
            for p in current.panels
        ]
        updated = current.model_copy(update={"panels": panels, "created_at": datetime.now()})
        # 已下单的漫画保持 ordered 状态
        if record.status == "ordered":
            self.update_comic(comic_id, generated_comic_data=updated.to_json())
        else:
            self.save_generated_comic(comic_id, updated)
        return updated

    def delete_comic(self, comic_id: str) -> bool:
        """删除记录，并尽量删除存储中的照片"""
        from comico.services.storage_service import get_storage_service

        record = self.get_comic(comic_id)
        if not record:
            return False

        storage = get_storage_service()
        if storage.configured:
            for url in record.photo_urls:
                try:
                    storage.delete(url)
                except StorageError as e:
                    logger.warning(f"删除照片失败 {url[:80]}: {e}")

        with Session(engine) as session:
            record = session.get(ComicRecord, comic_id)
            if record:
                session.delete(record)
                session.commit()
        logger.info(f"已删除漫画记录: {comic_id}")
        return True


# 全局单例
_comic_service: Optional[ComicService] = None


def get_comic_service() -> ComicService:
    """获取漫画记录服务单例"""
    global _comic_service
    if _comic_service is None:
        _comic_service = ComicService()
    return _comic_service
