"""
照片分析服务 - 视觉模型逐张描述照片
"""
from dataclasses import dataclass
from typing import Callable, Optional

from comico.core import get_logger
from comico.core.exceptions import ProviderError, classify_provider_error
from comico.models.comic_content import PhotoDescription, ResolvedPhoto
from comico.services.llm_service import LLMService, get_llm_service

logger = get_logger(__name__)


PHOTO_ANALYSIS_PROMPT = """Analyze this photo and provide a detailed description for comic book generation. CRITICAL REQUIREMENTS:
1) Identify the MAIN CHARACTER or SUBJECT in the image - this is essential
2) Describe them vividly: appearance, color, distinctive features, clothing/accessories, expression, pose
3) Name or identify what they are (animal species, profession, character type, etc.)
4) Describe the setting/environment
5) Any action or activity they're engaged in

Your description will be used to ensure this character/subject appears consistently in generated comic panels. Be specific and vivid so the subject can be easily recreated in artwork."""


@dataclass
class PhotoAnalysis:
    """单张照片的分析结果"""
    photo_index: int
    description: Optional[str] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.description is not None


def descriptions_of(results: list[PhotoAnalysis]) -> list[PhotoDescription]:
    """取出成功的描述，保持照片顺序"""
    return [
        PhotoDescription(photo_index=r.photo_index, text=r.description)
        for r in sorted(results, key=lambda r: r.photo_index)
        if r.ok
    ]


class PhotoService:
    """照片分析服务"""

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm_service = llm_service or get_llm_service()

    def describe_one(self, image_url: str) -> str:
        """
        分析单张照片

        失败直接抛出，由调用方决定是否吞掉
        """
        if not image_url:
            raise ValueError("图片地址不能为空")
        return self.llm_service.describe_image(
            prompt=PHOTO_ANALYSIS_PROMPT,
            image_url=image_url,
            max_tokens=400,
        )

    def describe_photos(
        self,
        photos: list[ResolvedPhoto],
        on_result: Optional[Callable[[PhotoAnalysis], None]] = None,
    ) -> list[PhotoAnalysis]:
        """
        按顺序逐张分析照片

        单张失败只记录日志，不重试，也不影响后续照片；
        每张照片都会得到一个结果对象
        """
        results: list[PhotoAnalysis] = []
        total = len(photos)
        for photo in photos:
            kind = "data URL" if photo.url.startswith("data:") else "外部链接"
            logger.info(f"分析照片 {photo.index + 1}/{total}（{kind}）")
            try:
                description = self.describe_one(photo.url)
                result = PhotoAnalysis(photo_index=photo.index, description=description)
                logger.info(f"照片 {photo.index + 1} 分析完成: {description[:100]}...")
            except Exception as e:
                error = classify_provider_error(e)
                logger.warning(f"照片 {photo.index + 1} 分析失败，跳过: {error}", exc_info=True)
                result = PhotoAnalysis(photo_index=photo.index, error=error)
            results.append(result)
            if on_result:
                on_result(result)

        succeeded = sum(1 for r in results if r.ok)
        logger.info(f"照片分析结束: {succeeded}/{total} 张成功")
        return results


# 全局单例
_photo_service: Optional[PhotoService] = None


def get_photo_service() -> PhotoService:
    """获取照片分析服务单例"""
    global _photo_service
    if _photo_service is None:
        _photo_service = PhotoService()
    return _photo_service
