"""
故事合成服务 - 用户故事 + 照片描述 → 标题 / 正文 / 分格字幕
"""
import json
import re
from typing import Optional

from comico.core import get_logger
from comico.core.exceptions import ProviderError, StoryGenerationError
from comico.models.comic_content import PhotoDescription, StoryContent
from comico.services.llm_service import LLMService, get_llm_service

logger = get_logger(__name__)

MIN_PANELS = 4
MAX_PANELS = 8

STORY_SYSTEM_PROMPT = (
    "You are a creative comic book writer. Create engaging, vivid narratives with dramatic "
    "dialogue and descriptions perfect for visual storytelling. Write captions as if they would "
    "appear in speech bubbles or narrative boxes in a real comic book. IMPORTANT: Write in the "
    "SAME LANGUAGE as the user's input story."
)

PHOTO_CONTEXT_HEADER = "CRITICAL INSTRUCTIONS FOR PHOTO USAGE:"

_PANEL_REQUEST_PATTERN = re.compile(
    r"(\d{1,2})\s*-?\s*(?:panels?\b|格|个分格|幅)",
    re.IGNORECASE,
)


def clamp_panel_count(requested: int) -> int:
    return max(MIN_PANELS, min(requested, MAX_PANELS))


def resolve_panel_count(
    story_text: str,
    photo_count: int,
    requested: Optional[int] = None,
) -> int:
    """
    决定分格数

    - 指定了分格数：限制在 [4, 8]
    - 否则按故事长度：<200 字符 4 格，<500 字符 6 格，其余 8 格，
      再保证不少于 min(照片数, 8)
    """
    if requested:
        return clamp_panel_count(requested)

    length = len(story_text.strip())
    if length < 200:
        count = 4
    elif length < 500:
        count = 6
    else:
        count = 8
    return max(count, min(photo_count, MAX_PANELS))


def parse_requested_panel_count(story_text: str) -> Optional[int]:
    """识别故事里写明的分格数，例如 "3 panels"、"6-panel comic"、"做成6格" """
    match = _PANEL_REQUEST_PATTERN.search(story_text or "")
    if not match:
        return None
    value = int(match.group(1))
    return value if value > 0 else None


def build_photo_context(descriptions: list[PhotoDescription]) -> str:
    """照片主角说明，没有描述时返回空串"""
    if not descriptions:
        return ""
    photos = "\n\n".join(f"PHOTO {d.photo_index + 1}:\n{d.text}" for d in descriptions)
    return (
        f"{PHOTO_CONTEXT_HEADER}\n"
        f"The user has uploaded {len(descriptions)} reference photo(s). These photos contain the "
        "MAIN CHARACTER(S) of your story. You MUST:\n"
        "1) Identify who/what is in these photos from the descriptions below\n"
        "2) Make them the PROTAGONISTS of your story - they are the stars\n"
        "3) Write the narrative and EVERY SINGLE caption featuring these characters\n"
        "4) Give them names if they don't have them, or use the names from the photos\n"
        "5) Describe their actions, dialogue, and emotions in your captions\n\n"
        f"REFERENCE PHOTOS:\n{photos}\n\n"
        "Your story MUST feature these characters prominently in every panel!"
    )


def build_story_prompt(
    story_text: str,
    num_panels: int,
    descriptions: list[PhotoDescription],
) -> str:
    photo_context = build_photo_context(descriptions)
    context_block = f"\n\n{photo_context}" if photo_context else ""
    character_rule = (
        " EACH CAPTION MUST MENTION OR SHOW THE CHARACTER(S) FROM THE UPLOADED PHOTOS."
        if photo_context else ""
    )
    return f"""Based on this user request, create a comic book story IN THE SAME LANGUAGE as the input:

"{story_text}"{context_block}

Generate:
1. A compelling title (max 60 characters)
2. A full narrative story (200-400 words) with dramatic dialogue and vivid descriptions
3. Exactly {num_panels} short, punchy captions (dialogue or narration) that will appear in speech bubbles on each panel - write them as natural comic book text without labels.{character_rule}

IMPORTANT: Write everything (title, narrative, and captions) in the SAME LANGUAGE as the input story above.

Format your response as JSON:
{{
  "title": "Story Title",
  "narrative": "Full story text with dialogue...",
  "panelCaptions": ["First panel dialogue or narration", "Second panel dialogue or narration", ...]
}}"""


def fit_captions(captions: list[str], num_panels: int) -> list[str]:
    """
    字幕条数对齐分格数

    多余的截掉，不足的重复最后一条补齐
    """
    if not captions:
        raise StoryGenerationError("故事结果缺少分格字幕")
    if len(captions) != num_panels:
        logger.warning(f"字幕数量 {len(captions)} 与分格数 {num_panels} 不一致，已对齐")
    fitted = captions[:num_panels]
    while len(fitted) < num_panels:
        fitted.append(fitted[-1])
    return fitted


def parse_story_response(raw: str, num_panels: int) -> StoryContent:
    """
    解析模型返回的故事 JSON

    缺少 title / narrative / panelCaptions 或格式不对时抛出 StoryGenerationError
    """
    if not raw or not raw.strip():
        raise StoryGenerationError("模型没有返回故事内容")

    # 兼容 markdown 代码块或前后带说明文字的情况
    json_match = re.search(r"\{[\s\S]*\}", raw)
    if not json_match:
        raise StoryGenerationError("故事结果不是 JSON")
    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise StoryGenerationError(f"故事 JSON 解析失败: {e}") from e

    title = data.get("title")
    narrative = data.get("narrative")
    captions = data.get("panelCaptions", data.get("panel_captions"))

    if not isinstance(title, str) or not title.strip():
        raise StoryGenerationError("故事结果缺少标题")
    if not isinstance(narrative, str) or not narrative.strip():
        raise StoryGenerationError("故事结果缺少正文")
    if not isinstance(captions, list) or not all(isinstance(c, str) for c in captions):
        raise StoryGenerationError("故事结果的分格字幕格式不正确")

    captions = [c.strip() for c in captions if c.strip()]
    return StoryContent(
        title=title.strip(),
        narrative=narrative.strip(),
        panel_captions=fit_captions(captions, num_panels),
    )


class StoryService:
    """故事合成服务"""

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm_service = llm_service or get_llm_service()

    def synthesize(
        self,
        story_text: str,
        num_panels: int,
        descriptions: Optional[list[PhotoDescription]] = None,
    ) -> StoryContent:
        """
        生成故事

        一次模型调用；任何失败都以 StoryGenerationError 抛出，
        原始的服务商错误保留在 __cause__ 中
        """
        if not story_text or not story_text.strip():
            raise ValueError("故事内容不能为空")

        descriptions = descriptions or []
        logger.info(
            f"开始生成故事: 分格数={num_panels}，照片描述={len(descriptions)} 条，"
            f"输入: {story_text[:100]}"
        )

        prompt = build_story_prompt(story_text.strip(), num_panels, descriptions)
        try:
            raw = self.llm_service.chat(
                messages=[{"role": "user", "content": prompt}],
                system_prompt=STORY_SYSTEM_PROMPT,
                temperature=0.8,
                max_tokens=1500,
                json_mode=True,
            )
        except ProviderError as e:
            raise StoryGenerationError(f"故事生成失败: {e}") from e

        story = parse_story_response(raw, num_panels)
        logger.info(f"故事生成完成: {story.title}")
        for idx, caption in enumerate(story.panel_captions):
            logger.debug(f"  分格 {idx + 1}: {caption}")
        return story


# 全局单例
_story_service: Optional[StoryService] = None


def get_story_service() -> StoryService:
    """获取故事服务单例"""
    global _story_service
    if _story_service is None:
        _story_service = StoryService()
    return _story_service
