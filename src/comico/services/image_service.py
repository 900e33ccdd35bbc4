"""
生图服务 - 调用 OpenAI 兼容的 /images/generations 接口
"""
from typing import Optional

import requests

from comico.core import get_settings, get_logger
from comico.core.exceptions import (
    ProviderAuthError,
    ProviderResponseError,
    classify_error_payload,
    classify_provider_error,
)

logger = get_logger(__name__)


class ImageService:
    """生图服务"""

    def __init__(self):
        settings = get_settings()
        self.base_url = settings.openai_base_url.rstrip("/")
        self.api_key = settings.openai_api_key
        self.model = settings.openai_image_model
        self.size = settings.image_size
        self.quality = settings.image_quality
        self.style = settings.image_style
        self.timeout = settings.openai_timeout

    def generate(
        self,
        prompt: str,
        size: Optional[str] = None,
        quality: Optional[str] = None,
    ) -> str:
        """
        生成单张图片

        Args:
            prompt: 图片生成Prompt
            size: 图片尺寸，默认取配置
            quality: standard / hd

        Returns:
            图片 URL
        """
        if not self.api_key:
            raise ProviderAuthError("OPENAI_API_KEY 未配置")

        url = f"{self.base_url}/images/generations"

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        payload = {
            "model": self.model,
            "prompt": prompt,
            "n": 1,
            "size": size or self.size,
            "quality": quality or self.quality,
            "style": self.style,
        }

        logger.debug(f"调用生图接口，prompt 长度: {len(prompt)}")

        try:
            response = requests.post(url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise classify_provider_error(e) from e

        if "error" in data:
            raise classify_error_payload(data, response.status_code)

        items = data.get("data") or []
        image_url = items[0].get("url") if items else None
        if not image_url:
            raise ProviderResponseError("生图接口没有返回图片地址")

        return image_url


# 全局单例
_image_service: Optional[ImageService] = None


def get_image_service() -> ImageService:
    """获取生图服务单例"""
    global _image_service
    if _image_service is None:
        _image_service = ImageService()
    return _image_service
