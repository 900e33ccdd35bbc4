"""
故事 API - 单独调用故事合成
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from comico.api.errors import to_http_exception
from comico.core import get_logger
from comico.models.comic_content import PhotoDescription
from comico.services.story_service import (
    get_story_service,
    parse_requested_panel_count,
    resolve_panel_count,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/stories", tags=["故事"])


class GenerateStoryRequest(BaseModel):
    """故事生成请求"""
    model_config = ConfigDict(populate_by_name=True)

    story: str
    photo_descriptions: list[str] = Field(default_factory=list, alias="photoDescriptions")
    num_panels: Optional[int] = Field(default=None, alias="numPanels")


@router.post("/generate")
def generate_story(request: GenerateStoryRequest):
    """生成标题、正文和分格字幕"""
    if not request.story.strip():
        raise HTTPException(status_code=400, detail="请输入故事内容")
    if request.num_panels is not None and request.num_panels < 1:
        raise HTTPException(status_code=400, detail="分格数必须是正整数")

    descriptions = [
        PhotoDescription(photo_index=idx, text=text)
        for idx, text in enumerate(request.photo_descriptions)
        if text and text.strip()
    ]
    num_panels = resolve_panel_count(
        request.story,
        len(request.photo_descriptions),
        request.num_panels or parse_requested_panel_count(request.story),
    )

    try:
        story = get_story_service().synthesize(request.story, num_panels, descriptions)
    except Exception as e:
        logger.error(f"故事生成失败: {e}", exc_info=True)
        raise to_http_exception(e)

    return {"numPanels": num_panels, **story.model_dump(by_alias=True)}
