"""
数据库连接管理 - 统一管理数据库连接
"""
import os

from sqlmodel import SQLModel, create_engine

from comico.core.config import get_settings

# 创建全局数据库引擎
_settings = get_settings()
if _settings.database_url.startswith("sqlite:///./"):
    os.makedirs(os.path.dirname(_settings.database_url[len("sqlite:///"):]) or ".", exist_ok=True)

engine = create_engine(
    _settings.database_url,
    echo=False,
    connect_args={"check_same_thread": False} if _settings.database_url.startswith("sqlite") else {},
)


def init_db() -> None:
    """创建所有表"""
    # 导入模型以注册元数据
    from comico import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


__all__ = ["engine", "init_db"]
