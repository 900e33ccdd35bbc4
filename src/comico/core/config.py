"""
配置管理 - 环境变量 / .env 统一入口
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API 配置
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = True
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # OpenAI 兼容 API 配置
    # 保留 NEXT_PUBLIC_OPENAI_API_KEY 作为兼容别名，旧前端部署的环境变量仍然可用。
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY", "NEXT_PUBLIC_OPENAI_API_KEY"),
    )
    openai_base_url: str = "https://api.openai.com/v1"
    openai_chat_model: str = "gpt-4-turbo-preview"
    openai_vision_model: str = "gpt-4o"
    openai_image_model: str = "dall-e-3"
    openai_timeout: float = 120.0

    # 生图参数
    image_size: str = "1024x1024"
    image_quality: str = "hd"
    image_style: str = "vivid"
    # DALL-E 每分钟约 50 次请求，两次生图之间固定间隔
    panel_delay_seconds: float = 1.5
    panels_per_page: int = 2
    max_prompt_chars: int = 3900

    # 对象存储（S3 兼容），bucket 为空表示未配置，上传直接走 data URL 兜底
    storage_bucket: str = ""
    storage_endpoint_url: str = ""
    storage_access_key_id: str = ""
    storage_secret_access_key: str = ""
    storage_region: str = "auto"
    storage_public_url: str = ""

    # 数据库配置
    database_url: str = "sqlite:///./data/comico.db"

    # 日志配置
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
