"""
服务模块
"""
from .llm_service import LLMService, get_llm_service
from .photo_service import PhotoService, get_photo_service
from .story_service import StoryService, get_story_service
from .panel_service import PanelService, get_panel_service

__all__ = [
    "LLMService",
    "get_llm_service",
    "PhotoService",
    "get_photo_service",
    "StoryService",
    "get_story_service",
    "PanelService",
    "get_panel_service",
]
