"""
数据模型模块
"""
from .comic_record import ComicRecord
from .order_record import OrderRecord
from .comic_content import (
    ArtStyle,
    ComicPanel,
    GeneratedComic,
    GenerationOutcome,
    InlinePhoto,
    PanelStatus,
    PhotoDescription,
    PhotoInput,
    RawPhoto,
    RemotePhoto,
    ResolvedPhoto,
    StoryContent,
    photo_input_from_value,
)

__all__ = [
    "ComicRecord",
    "OrderRecord",
    "ArtStyle",
    "ComicPanel",
    "GeneratedComic",
    "GenerationOutcome",
    "InlinePhoto",
    "PanelStatus",
    "PhotoDescription",
    "PhotoInput",
    "RawPhoto",
    "RemotePhoto",
    "ResolvedPhoto",
    "StoryContent",
    "photo_input_from_value",
]
