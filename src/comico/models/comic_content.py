"""
漫画生成内容模型

这些对象不落独立的表，GeneratedComic 序列化为 JSON 后存入
ComicRecord.generated_comic_data，字段名沿用前端约定的 camelCase。
"""
import base64
import math
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ============ 照片输入 ============

@dataclass(frozen=True)
class RawPhoto:
    """用户上传的原始图片字节"""
    data: bytes
    filename: str
    content_type: str = ""

    @property
    def mime_type(self) -> str:
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "image/jpeg"

    @property
    def extension(self) -> str:
        if "." in self.filename:
            return self.filename.rsplit(".", 1)[-1].lower() or "jpg"
        return "jpg"

    def to_data_url(self) -> str:
        """转为内联 data URL（存储上传失败时的兜底）"""
        if not self.data:
            raise ValueError(f"图片内容为空: {self.filename}")
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass(frozen=True)
class RemotePhoto:
    """已可访问的图片链接"""
    url: str


@dataclass(frozen=True)
class InlinePhoto:
    """data:<mime>;base64,... 形式的内联图片"""
    data_url: str


PhotoInput = Union[RawPhoto, RemotePhoto, InlinePhoto]


def photo_input_from_value(value: str) -> PhotoInput:
    """根据字符串判断是远程链接还是 data URL，只在入口判断一次。"""
    value = (value or "").strip()
    if value.startswith("data:"):
        return InlinePhoto(data_url=value)
    if value.startswith(("http://", "https://")):
        return RemotePhoto(url=value)
    raise ValueError(f"无法识别的图片地址: {value[:60]}")


@dataclass(frozen=True)
class ResolvedPhoto:
    """可直接交给视觉模型的图片地址"""
    index: int
    url: str
    source: str  # storage / inline / remote


@dataclass(frozen=True)
class PhotoDescription:
    """单张照片的视觉分析结果，photo_index 与输入照片顺序一一对应"""
    photo_index: int
    text: str


# ============ 故事与分格 ============

class ArtStyle(str, Enum):
    """画风预设"""
    COMIC = "comic"
    MANGA = "manga"
    GRAPHIC_NOVEL = "graphic_novel"
    CARTOON = "cartoon"
    WATERCOLOR = "watercolor"

    @property
    def descriptor(self) -> str:
        return STYLE_DESCRIPTORS[self]


STYLE_DESCRIPTORS: dict[ArtStyle, str] = {
    ArtStyle.COMIC: "vibrant comic book style with bold lines, dynamic composition, saturated colors, and dramatic lighting",
    ArtStyle.MANGA: "Japanese manga style with expressive characters, speed lines, screen tones, and detailed backgrounds",
    ArtStyle.GRAPHIC_NOVEL: "mature graphic novel style with realistic proportions, atmospheric lighting, detailed textures, and cinematic framing",
    ArtStyle.CARTOON: "playful cartoon style with exaggerated features, bright colors, simple shapes, and energetic poses",
    ArtStyle.WATERCOLOR: "watercolor illustration style with soft edges, flowing colors, artistic brushstrokes, and gentle lighting",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoryContent(_CamelModel):
    """故事合成结果，生成后不再修改"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    narrative: str
    panel_captions: list[str]


class PanelStatus(str, Enum):
    GENERATED = "generated"
    PROCESSING = "processing"
    ERROR = "error"


class ComicPanel(_CamelModel):
    """单个分格"""
    panel_number: int = Field(ge=1)
    description: str
    image_url: str = ""
    status: PanelStatus = PanelStatus.PROCESSING
    error: Optional[str] = None


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class GeneratedComic(_CamelModel):
    """一次完整生成的结果"""
    title: str
    story: StoryContent
    panels: list[ComicPanel]
    total_pages: int
    created_at: datetime = Field(default_factory=datetime.now)
    style: ArtStyle = ArtStyle.COMIC
    generated_with: str = ""

    @classmethod
    def assemble(
        cls,
        story: StoryContent,
        panels: list[ComicPanel],
        panels_per_page: int = 2,
        style: ArtStyle = ArtStyle.COMIC,
        generated_with: str = "",
    ) -> "GeneratedComic":
        if panels_per_page < 1:
            raise ValueError("每页分格数必须大于 0")
        return cls(
            title=story.title,
            story=story,
            panels=panels,
            total_pages=math.ceil(len(panels) / panels_per_page),
            style=style,
            generated_with=generated_with,
        )

    @property
    def error_count(self) -> int:
        return sum(1 for p in self.panels if p.status == PanelStatus.ERROR)

    @property
    def outcome(self) -> GenerationOutcome:
        errors = self.error_count
        if errors == 0:
            return GenerationOutcome.SUCCESS
        if errors < len(self.panels):
            return GenerationOutcome.PARTIAL
        return GenerationOutcome.FAILED

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "GeneratedComic":
        return cls.model_validate_json(raw)
