"""
测试配置
"""
import os
import sys
import pytest

# 添加 src 目录到 Python 路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# 设置测试环境变量（必须在导入 comico 之前）
os.environ["DATABASE_URL"] = "sqlite:///./data/test_comico.db"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["STORAGE_BUCKET"] = ""
os.environ["PANEL_DELAY_SECONDS"] = "0"


@pytest.fixture
def test_db(monkeypatch):
    """测试数据库 fixture，同时替换服务模块里的 engine"""
    from sqlmodel import create_engine, SQLModel
    from sqlalchemy.pool import StaticPool
    from comico.models import ComicRecord, OrderRecord  # noqa: F401
    import comico.services.comic_service as comic_service_module
    import comico.services.order_service as order_service_module

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(comic_service_module, "engine", engine)
    monkeypatch.setattr(order_service_module, "engine", engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


class FakeClock:
    """可控时钟：sleep 推进时间并记录"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
