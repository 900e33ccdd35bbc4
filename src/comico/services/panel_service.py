"""
分格图片合成服务
"""
from dataclasses import dataclass
from typing import Callable, Optional

from comico.core import get_settings, get_logger
from comico.core.exceptions import ProviderError, classify_provider_error
from comico.models.comic_content import (
    ArtStyle,
    ComicPanel,
    PanelStatus,
    PhotoDescription,
)
from comico.services.image_service import ImageService, get_image_service
from comico.services.rate_limiter import IntervalRateLimiter

logger = get_logger(__name__)

SUBJECT_SUMMARY_CHARS = 250

NO_TEXT_INSTRUCTION = """EXTREMELY IMPORTANT - ABSOLUTELY NO TEXT OF ANY KIND IN THIS IMAGE:
- NO WORDS
- NO LETTERS
- NO NUMBERS
- NO SPEECH BUBBLES
- NO DIALOGUE BOXES
- NO NARRATIVE CAPTIONS
- NO SOUND EFFECTS
- NO LABELS
- NO TEXT IN ANY FORM WHATSOEVER
Generate ONLY pure visual artwork with no text elements."""

SUBJECT_SECTION_HEADER = "CRITICAL CHARACTER REQUIREMENT:"


def _condense(text: str, limit: int = SUBJECT_SUMMARY_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_subject_section(descriptions: list[PhotoDescription]) -> str:
    """照片主体的强制出镜要求，没有描述时返回空串"""
    if not descriptions:
        return ""
    lines = "\n".join(
        f"- Reference Photo {d.photo_index + 1}: {_condense(d.text)}" for d in descriptions
    )
    return (
        f"{SUBJECT_SECTION_HEADER}\n"
        "You MUST include the following character(s) from uploaded reference photos in this exact panel:\n"
        f"{lines}\n\n"
        "These characters MUST be prominently visible, clearly recognizable, and in the "
        "foreground or central focus of the panel. This is non-negotiable."
    )


def build_panel_prompt(
    caption: str,
    index: int,
    total: int,
    art_style: ArtStyle = ArtStyle.COMIC,
    descriptions: Optional[list[PhotoDescription]] = None,
    max_chars: int = 3900,
) -> str:
    """
    组装单个分格的生图 Prompt

    第一格是开场镜头，最后一格是高潮/收尾，其余为动作镜头；
    结果按服务商长度上限截断
    """
    style = ArtStyle(art_style).descriptor

    if index == 0:
        framing = f"Establishing shot - {style}. Opening scene: {caption}"
    elif index == total - 1:
        framing = f"Final resolution panel - {style}. Climactic scene: {caption}"
    else:
        framing = f"Action panel - {style}. Story scene: {caption}"

    parts = [framing]
    subject_section = build_subject_section(descriptions or [])
    if subject_section:
        parts.append(subject_section)
    parts.append(NO_TEXT_INSTRUCTION)
    parts.append("High quality, detailed artwork. REMEMBER: Zero text of any kind.")

    prompt = "\n\n".join(parts)
    return prompt[:max_chars]


@dataclass
class PanelResult:
    """单个分格的生成结果，失败时 error 非空"""
    panel: ComicPanel
    prompt: str
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PanelService:
    """
    分格图片合成

    严格按分格顺序逐个调用生图接口，单格失败记为 error 状态继续后续分格
    """

    def __init__(
        self,
        image_service: Optional[ImageService] = None,
        rate_limiter: Optional[IntervalRateLimiter] = None,
    ):
        settings = get_settings()
        self.image_service = image_service or get_image_service()
        self.rate_limiter = rate_limiter or IntervalRateLimiter(settings.panel_delay_seconds)
        self.max_prompt_chars = settings.max_prompt_chars

    def _render(
        self,
        panel_number: int,
        caption: str,
        prompt: str,
    ) -> PanelResult:
        self.rate_limiter.wait()
        try:
            image_url = self.image_service.generate(prompt)
        except Exception as e:
            error = classify_provider_error(e)
            logger.error(f"分格 {panel_number} 生成失败: {error}", exc_info=True)
            return PanelResult(
                panel=ComicPanel(
                    panel_number=panel_number,
                    description=caption,
                    image_url="",
                    status=PanelStatus.ERROR,
                    error=str(error),
                ),
                prompt=prompt,
                error=error,
            )

        self.rate_limiter.mark()
        return PanelResult(
            panel=ComicPanel(
                panel_number=panel_number,
                description=caption,
                image_url=image_url,
                status=PanelStatus.GENERATED,
            ),
            prompt=prompt,
        )

    def synthesize_panels(
        self,
        captions: list[str],
        art_style: ArtStyle = ArtStyle.COMIC,
        descriptions: Optional[list[PhotoDescription]] = None,
        on_panel: Optional[Callable[[PanelResult], None]] = None,
    ) -> list[PanelResult]:
        """
        为每条字幕生成一格图片

        Args:
            captions: 按顺序排列的分格字幕
            art_style: 画风
            descriptions: 照片描述（用于保持主体一致）
            on_panel: 每格完成后的回调（用于推送进度）

        Returns:
            与 captions 等长的结果列表
        """
        total = len(captions)
        descriptions = descriptions or []
        logger.info(
            f"开始生成 {total} 个分格，照片参考: {len(descriptions)} 条，画风: {ArtStyle(art_style).value}"
        )

        results: list[PanelResult] = []
        for index, caption in enumerate(captions):
            prompt = build_panel_prompt(
                caption,
                index,
                total,
                art_style=art_style,
                descriptions=descriptions,
                max_chars=self.max_prompt_chars,
            )
            logger.info(f"生成分格 {index + 1}/{total}")
            result = self._render(index + 1, caption, prompt)
            results.append(result)
            if on_panel:
                on_panel(result)

        failed = sum(1 for r in results if not r.ok)
        logger.info(f"分格生成结束: 成功 {total - failed}，失败 {failed}")
        return results

    def regenerate_panel(
        self,
        panel_number: int,
        description: str,
        total_panels: int,
        art_style: ArtStyle = ArtStyle.COMIC,
        descriptions: Optional[list[PhotoDescription]] = None,
    ) -> PanelResult:
        """单独重新生成某一格，镜头类型按它在整本漫画中的位置决定"""
        if panel_number < 1 or panel_number > total_panels:
            raise ValueError(f"分格编号超出范围: {panel_number}")
        prompt = build_panel_prompt(
            description,
            panel_number - 1,
            total_panels,
            art_style=art_style,
            descriptions=descriptions,
            max_chars=self.max_prompt_chars,
        )
        return self._render(panel_number, description, prompt)


# 全局单例
_panel_service: Optional[PanelService] = None


def get_panel_service() -> PanelService:
    """获取分格服务单例"""
    global _panel_service
    if _panel_service is None:
        _panel_service = PanelService()
    return _panel_service
